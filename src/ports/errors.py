class CollaboratorError(Exception):
    """
    Raised by adapters when an external collaborator (database, mail or
    messaging provider) fails. Components report it as a retryable
    dependency failure instead of letting it escape.
    """

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")
