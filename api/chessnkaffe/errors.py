class DuplicateProposalError(Exception):
    """A proposal already exists between the two users."""

    def __init__(self, status: str | None = None):
        self.status = status
        detail = "Connection request already sent to this user"
        if status:
            detail = f"A connection with this user is already {status}"
        super().__init__(detail)


class ProposalRejected(Exception):
    pass


class ConnectionNotFound(Exception):
    pass


class ConnectionActionNotAllowed(Exception):
    def __init__(self, detail: str, status_code: int = 409):
        self.status_code = status_code
        super().__init__(detail)


class RatingLookupError(Exception):
    """An online rating service failed or answered with something unusable."""

    def __init__(self, platform: str, detail: str, status_code: int = 502):
        self.platform = platform
        self.status_code = status_code
        super().__init__(detail)
