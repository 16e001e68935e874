class MessageNotFound(Exception):
    """Raised when an operation addresses a message id that does not exist."""

    def __init__(self, message_id: str = None):
        super().__init__('Message not found')
        self.message_id = message_id
