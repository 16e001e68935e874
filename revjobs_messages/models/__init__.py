from .messages import Message, populate_defaults  # noqa: F401
