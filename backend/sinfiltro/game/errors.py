class GameError(Exception):
    """A request was rejected; ``code`` is what clients see."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
