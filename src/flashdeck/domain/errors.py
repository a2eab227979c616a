"""Exception hierarchy shared by every flashdeck layer."""


class FlashdeckError(Exception):
    """Base class for all flashdeck errors."""


class InvalidGradeError(FlashdeckError, ValueError):
    """A recall grade outside the accepted 1-5 range."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Invalid grade {quality!r}: expected an integer from 1 to 5.")


class SessionStateError(FlashdeckError):
    """An action that is not legal in the session's current phase."""


class RepositoryError(FlashdeckError):
    """Storage collaborator failed to read or write."""


class NotFoundError(RepositoryError):
    """A subject, deck or card that does not exist."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} not found: {item_id}")


class DeckImportError(FlashdeckError, ValueError):
    """A deck import payload that cannot be parsed or validated."""
