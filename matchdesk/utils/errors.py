"""Error handling utilities."""

from typing import Optional


class MatchDeskError(Exception):
    """Base exception for matchdesk."""
    pass


class MissingBrokerageAssociation(MatchDeskError):
    """Neither the client nor the acting agent is linked to a brokerage."""

    def __init__(self, client_id: Optional[str] = None, agent_id: Optional[str] = None):
        self.client_id = client_id
        self.agent_id = agent_id
        super().__init__("Attach failed: client/agent is not linked to a brokerage_id.")


class MatchNotFound(MatchDeskError):
    """Match record could not be loaded."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__("Match not found.")


class StoreError(MatchDeskError):
    """Record store operation error."""
    pass


class StoreUnavailable(StoreError):
    """Store rejected or failed the request. Message is the store's, verbatim."""
    pass


class StoreTimeout(StoreError):
    """Store call did not complete within the configured timeout."""

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{operation} timed out after {timeout_seconds:g}s")


class PartialAttachFailure(MatchDeskError):
    """The property upsert succeeded but a later attach step failed."""

    LINK = "link"
    STATUS = "status"

    def __init__(self, step: str, property_id: str, detail: str):
        self.step = step
        self.property_id = property_id
        self.detail = detail
        self.link_created = step == self.STATUS
        if step == self.LINK:
            message = (
                f"Property {property_id} was created/updated, "
                f"but attaching it to the client failed: {detail}"
            )
        else:
            message = f"Attached, but could not update recommendation status: {detail}"
        super().__init__(message)


class InvalidState(MatchDeskError):
    """Transition attempted on a match that is no longer 'new'."""

    def __init__(self, match_id: str, status: Optional[str] = None):
        self.match_id = match_id
        self.status = status
        super().__init__(f"Match {match_id} is not new (status={status})")
