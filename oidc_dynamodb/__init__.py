"""OAuth/OpenID Connect entity stores persisted in Amazon DynamoDB."""

__version__ = "0.1.0"
