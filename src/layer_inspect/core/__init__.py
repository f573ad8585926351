"""Reference parsing, credentials, configuration and HTTP sessions."""
