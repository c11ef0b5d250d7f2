from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Integer,
    String,
    Text,
    Index,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# SQLite only auto-increments INTEGER primary keys.
_ID = BigInteger().with_variant(Integer(), "sqlite")
_JSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class SignedRow:
    # Append-only: one template per schema generation, never edited or removed.
    __canonical_forms__: ClassVar[tuple[str, ...]] = ()
    # Encrypted column -> columns whose values bind the ciphertext to its owner.
    __encrypted_fields__: ClassVar[dict[str, tuple[str, ...]]] = {}

    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    canonical_form_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Application(SignedRow, Base):
    __tablename__ = "application"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_application_project_name"),
        Index("ix_application_project_repository", "project_id", "from_repository"),
    )
    __canonical_forms__ = (
        "{id}:{project_id}:{name}:{description}:{repo_fullname}:{vcs_server}:{from_repository}",
        "{id}:{project_id}:{name}:{description}:{repo_fullname}:{vcs_server}:{from_repository}"
        ":{vcs_connection_type}:{vcs_user}:{vcs_ssh_key}:{vcs_pgp_key}:{vcs_branch}"
        ":{vcs_cipher_password}:{metadata_json}:{icon}",
    )
    __encrypted_fields__ = {"vcs_cipher_password": ("project_id", "name")}

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    # Weak reference: projects live in another service.
    project_id: Mapped[int] = mapped_column(BigInteger, index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    icon: Mapped[str] = mapped_column(Text, default="")
    repo_fullname: Mapped[str] = mapped_column(String, default="")
    # Weak reference to the VCS integration by name.
    vcs_server: Mapped[str] = mapped_column(String, default="")
    vcs_connection_type: Mapped[str] = mapped_column(String, default="https")
    vcs_user: Mapped[str] = mapped_column(String, default="")
    vcs_ssh_key: Mapped[str] = mapped_column(String, default="")
    vcs_pgp_key: Mapped[str] = mapped_column(String, default="")
    vcs_branch: Mapped[str] = mapped_column(String, default="")
    vcs_cipher_password: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Non-empty when the application is managed as code from a repository.
    from_repository: Mapped[str] = mapped_column(String, default="")
    metadata_json: Mapped[dict[str, Any]] = mapped_column(_JSON, default=dict)
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ApplicationVariable(SignedRow, Base):
    __tablename__ = "application_variable"
    __table_args__ = (
        UniqueConstraint("application_id", "name", name="uq_application_variable_name"),
    )
    __canonical_forms__ = (
        "{id}:{application_id}:{name}:{type}:{clear_value}:{cipher_value}",
    )
    __encrypted_fields__ = {"cipher_value": ("application_id", "name")}

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(BigInteger, index=True)
    name: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String, default="string")
    # Exactly one of clear_value/cipher_value carries the value, depending on type.
    clear_value: Mapped[str] = mapped_column(Text, default="")
    cipher_value: Mapped[str | None] = mapped_column(Text, nullable=True)


class ApplicationKey(SignedRow, Base):
    __tablename__ = "application_key"
    __table_args__ = (
        UniqueConstraint("application_id", "name", name="uq_application_key_name"),
    )
    __canonical_forms__ = (
        "{id}:{application_id}:{name}:{type}:{public}:{key_id}:{cipher_private}",
    )
    __encrypted_fields__ = {"cipher_private": ("application_id", "name")}

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(BigInteger, index=True)
    name: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String)
    public: Mapped[str] = mapped_column(Text, default="")
    # PGP key id or SSH fingerprint, displayed to operators.
    key_id: Mapped[str] = mapped_column(String, default="")
    cipher_private: Mapped[str | None] = mapped_column(Text, nullable=True)


class ApplicationDeploymentStrategy(SignedRow, Base):
    __tablename__ = "application_deployment_strategy"
    __table_args__ = (
        UniqueConstraint(
            "application_id", "integration_name", name="uq_application_deployment_strategy_integration"
        ),
    )
    __canonical_forms__ = (
        "{id}:{application_id}:{integration_name}:{config}:{cipher_config}",
    )
    __encrypted_fields__ = {"cipher_config": ("application_id", "integration_name")}

    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(BigInteger, index=True)
    integration_name: Mapped[str] = mapped_column(String)
    # Password-typed values are blanked here and kept only in cipher_config.
    config: Mapped[dict[str, Any]] = mapped_column(_JSON, default=dict)
    cipher_config: Mapped[str | None] = mapped_column(Text, nullable=True)


class ApplicationVariableAudit(Base):
    __tablename__ = "application_variable_audit"
    __table_args__ = (
        Index("ix_application_variable_audit_app_var", "application_id", "variable_id"),
    )

    # No foreign keys: audit history outlives the variable and the application.
    id: Mapped[int] = mapped_column(_ID, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(BigInteger)
    variable_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    type: Mapped[str] = mapped_column(String)
    author: Mapped[str] = mapped_column(String)
    variable_before: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    variable_after: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    versioned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
