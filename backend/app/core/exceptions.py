from __future__ import annotations


class AutomationError(Exception):
    """Base class for errors raised by the automation core."""


class ValidationFailure(AutomationError):
    """Caller supplied malformed input. Never retried."""


class DuplicateUrlError(ValidationFailure):
    """Another bookmark already stores this URL."""

    def __init__(self, url: str, existing_id: int) -> None:
        super().__init__(f"URL {url} is already stored as bookmark {existing_id}")
        self.url = url
        self.existing_id = existing_id


class NotFoundError(AutomationError):
    """A referenced bookmark, tag or workflow does not exist."""

    def __init__(self, kind: str, item_id: int) -> None:
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.item_id = item_id


class StorageError(AutomationError):
    """A store operation failed."""


class MergeIncompleteError(StorageError):
    """A tag merge did not complete; the source tag is still present."""

    def __init__(self, source_id: int, target_id: int, reason: str) -> None:
        super().__init__(f"merge of tag {source_id} into {target_id} not completed: {reason}")
        self.source_id = source_id
        self.target_id = target_id


class EnrichmentError(AutomationError):
    """The enrichment pipeline failed for one bookmark."""


class EnrichmentAuthError(EnrichmentError):
    """The AI endpoint rejected our credentials."""


class ScrapeError(EnrichmentError):
    """The page could not be fetched or parsed."""
