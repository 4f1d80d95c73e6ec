"""Identity service: accounts, roles, password hashing, and bearer tokens."""
