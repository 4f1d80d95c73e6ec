"""Capability keys used to register and resolve runtime services."""

SETTINGS = "settings"
DATA_STORE = "data-store"
PASSWORD_HASHER = "password-hasher"
ACCOUNT_REPOSITORY = "account-repository"
CREDENTIAL_MANAGER = "credential-manager"
TOKEN_SIGNER = "token-signer"
MAIL_SENDER = "mail-sender"
OBJECT_MAPPER = "object-mapper"
COMMAND_DISPATCHER = "command-dispatcher"
VALIDATION_INTERCEPTOR = "validation-interceptor"
API_DOCUMENTATION = "api-documentation"
ROUTERS = "routers"
