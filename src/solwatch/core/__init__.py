"""Core building blocks: exceptions, retry policy, validation, composition root."""
