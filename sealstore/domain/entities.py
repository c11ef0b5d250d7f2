from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import ValidationFailedError


NAME_PATTERN = r"^[a-zA-Z0-9._-]{1,}$"
_NAME_RE = re.compile(NAME_PATTERN)

VARIABLE_TYPES = ("string", "text", "boolean", "number", "password", "key")
# Variable types whose values are stored encrypted.
SECRET_VARIABLE_TYPES = frozenset({"password", "key"})

KEY_TYPES = ("ssh", "pgp")
KEY_NAME_PREFIX = "app-"

CONNECTION_TYPES = ("https", "ssh")
# Connection types that authenticate with a key and never carry a password.
PASSWORDLESS_CONNECTION_TYPES = frozenset({"ssh"})

INTEGRATION_CONFIG_TYPES = ("string", "text", "password", "boolean", "number")

AUDIT_ADD = "add"
AUDIT_UPDATE = "update"
AUDIT_DELETE = "delete"


def _check_name(kind: str, name: str) -> None:
    if not name or not _NAME_RE.fullmatch(name):
        raise ValidationFailedError(f"Invalid {kind} name. It should match {NAME_PATTERN}")


class RepositoryStrategy(BaseModel):
    connection_type: str = "https"
    user: str = ""
    password: str = ""
    ssh_key: str = ""
    pgp_key: str = ""
    branch: str = ""

    def uses_password(self) -> bool:
        return self.connection_type not in PASSWORDLESS_CONNECTION_TYPES


class Variable(BaseModel):
    id: int | None = None
    name: str
    type: str = "string"
    value: str = ""

    def is_secret(self) -> bool:
        return self.type in SECRET_VARIABLE_TYPES

    def validate_entity(self) -> None:
        _check_name("variable", self.name)
        if self.type not in VARIABLE_TYPES:
            raise ValidationFailedError(f"Invalid variable type {self.type}")


class ApplicationKey(BaseModel):
    id: int | None = None
    application_id: int | None = None
    name: str
    type: str
    public: str = ""
    private: str = ""
    key_id: str = ""

    def validate_entity(self) -> None:
        if not self.name.startswith(KEY_NAME_PREFIX):
            raise ValidationFailedError(f"Key name must start with '{KEY_NAME_PREFIX}'")
        _check_name("key", self.name)
        if self.type not in KEY_TYPES:
            raise ValidationFailedError(f"Invalid key type {self.type}")


class IntegrationConfigValue(BaseModel):
    type: str = "string"
    value: str = ""
    description: str = ""


IntegrationConfig = dict[str, IntegrationConfigValue]


def validate_integration_config(config: IntegrationConfig) -> None:
    for setting, item in config.items():
        if not setting:
            raise ValidationFailedError("Integration setting names must not be empty")
        if item.type not in INTEGRATION_CONFIG_TYPES:
            raise ValidationFailedError(f"Invalid type {item.type} for setting {setting}")


def merge_integration_config(base: IntegrationConfig, update: IntegrationConfig) -> IntegrationConfig:
    # A placeholder password in the update keeps the value already present in base.
    merged = {name: item.model_copy() for name, item in base.items()}
    for name, item in update.items():
        current = merged.get(name)
        if (
            current is not None
            and item.type == "password"
            and item.value == PASSWORD_PLACEHOLDER
        ):
            merged[name] = item.model_copy(update={"value": current.value})
            continue
        merged[name] = item.model_copy()
    return merged


class Application(BaseModel):
    id: int | None = None
    project_id: int | None = None
    name: str
    description: str = ""
    # None until loaded with WITH_ICON; updates keep the stored icon while it is None.
    icon: str | None = None
    repository_fullname: str = ""
    vcs_server: str = ""
    repository_strategy: RepositoryStrategy = Field(default_factory=RepositoryStrategy)
    from_repository: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)
    last_modified: datetime | None = None
    # Related aggregates stay None until a load option attaches them.
    variables: list[Variable] | None = None
    keys: list[ApplicationKey] | None = None
    deployment_strategies: dict[str, IntegrationConfig] | None = None

    def validate_entity(self) -> None:
        _check_name("application", self.name)
        if self.repository_strategy.connection_type not in CONNECTION_TYPES:
            raise ValidationFailedError(
                f"Invalid connection type {self.repository_strategy.connection_type}"
            )
        if self.variables:
            for variable in self.variables:
                variable.validate_entity()


class IDName(BaseModel):
    id: int
    name: str
    description: str = ""
    icon: str = ""


class VariableAudit(BaseModel):
    id: int
    application_id: int
    variable_id: int | None
    type: str
    author: str
    before: Variable | None = None
    after: Variable | None = None
    versioned_at: datetime
