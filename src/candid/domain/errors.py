"""Domain errors surfaced to callers."""


class CandidError(Exception):
    """Base class for user-distinguishable domain failures."""


class NotAuthenticated(CandidError):
    """No identity was presented."""


class NotAuthorized(CandidError):
    """Identity is present but lacks the rights for the action."""


class NotAParticipant(NotAuthorized):
    """The user has no membership record for the session."""


class NotOwner(CandidError):
    """A referenced photo is not owned by the expected party."""


class InvalidState(CandidError):
    """The session or trade is not in the state the action requires."""


class SessionNotActive(InvalidState):
    """The session has already been revealed or ended."""


class AlreadyResolved(InvalidState):
    """The trade is no longer pending."""


class NotFound(CandidError):
    """A session, photo or trade id does not resolve."""
