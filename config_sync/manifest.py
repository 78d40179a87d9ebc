"""Representation of sync sources, targets and the manifests applied to a cluster.

The `ConfigSync` object declares where manifests come from (`SourceSpec`) and
where they go (`TargetRef`). Fetching a source yields a `ResolvedSnapshot`, and
every document read from the snapshot is a `ManifestDocument`.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, ClassVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_encode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import InputException, SourceUnsupportedError

__all__ = [
    "AuthMethod",
    "ObjectRef",
    "GitSource",
    "SourceKind",
    "SourceSpec",
    "TargetRef",
    "ConfigSync",
    "ResolvedSnapshot",
    "NamedResource",
    "ManifestDocument",
    "ConfigMap",
    "Secret",
    "ApplyOutcome",
    "ApplyResult",
]

_LOGGER = logging.getLogger(__name__)


CONFIG_SYNC_DOMAIN = "configs.configsync.io"
CONFIG_SYNC_KIND = "ConfigSync"
CONFIG_MAP_KIND = "ConfigMap"
SECRET_KIND = "Secret"


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not isinstance(api_version := doc.get("apiVersion"), str) or not api_version:
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    class Config(BaseConfig):
        omit_none = True


class AuthMethod(str, Enum):
    """How to authenticate against a git repository."""

    NONE = "none"
    TOKEN = "token"
    BASIC = "basic"
    SSH = "ssh"


@dataclass
class ObjectRef(BaseManifest):
    """A namespaced reference to an object in the cluster."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class GitSource(BaseManifest):
    """A git repository holding manifests."""

    url: str = field(metadata=field_options(alias="repoURL"))
    """The URL of the repository."""

    revision: str | None = None
    """An exact commit or tag to check out, takes precedence over branch."""

    branch: str | None = None
    """The branch to follow when no revision is set."""

    auth_method: AuthMethod = field(
        metadata=field_options(alias="authMethod"), default=AuthMethod.NONE
    )
    """The authentication method used with the secret reference."""

    auth_secret_ref: ObjectRef | None = field(
        metadata=field_options(alias="authSecretRef"), default=None
    )
    """Reference to the Secret holding the credentials."""

    @property
    def ref_str(self) -> str | None:
        """Get the reference string for the requested checkout."""
        if self.revision:
            return f"revision:{self.revision}"
        if self.branch:
            return f"branch:{self.branch}"
        return None


class SourceKind(str, Enum):
    """The closed set of supported source kinds."""

    GIT = "git"
    CONFIG_OBJECT = "configMapRef"


@dataclass
class SourceSpec(BaseManifest):
    """Declares where manifests are fetched from.

    Exactly one of `git` or `config_map_ref` must be set.
    """

    git: GitSource | None = None
    config_map_ref: ObjectRef | None = field(
        metadata=field_options(alias="configMapRef"), default=None
    )

    @property
    def kind(self) -> SourceKind:
        """Return the kind of source declared."""
        if self.git is not None and self.config_map_ref is not None:
            raise SourceUnsupportedError(
                "Only one source may be set, found both git and configMapRef"
            )
        if self.git is not None:
            return SourceKind.GIT
        if self.config_map_ref is not None:
            return SourceKind.CONFIG_OBJECT
        raise SourceUnsupportedError(
            "No source declared; set spec.source.git or spec.source.configMapRef"
        )


@dataclass
class TargetRef(BaseManifest):
    """Where manifests are applied."""

    namespace: str | None = None
    """Overrides the namespace of every namespaced manifest when set."""


@dataclass
class ConfigSync(BaseManifest):
    """A declaration of a source synchronized onto the cluster."""

    kind: ClassVar[str] = CONFIG_SYNC_KIND

    name: str
    namespace: str | None
    source: SourceSpec
    target: TargetRef = field(default_factory=TargetRef)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ConfigSync":
        """Parse a ConfigSync from a kubernetes resource object."""
        _check_version(doc, CONFIG_SYNC_DOMAIN)
        if doc.get("kind") != CONFIG_SYNC_KIND:
            raise InputException(f"Invalid {cls} expected kind {cls.kind}: {doc}")
        if not isinstance(metadata := doc.get("metadata"), dict):
            raise InputException(f"Invalid {cls} missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
        if not isinstance(spec := doc.get("spec"), dict):
            raise InputException(f"Invalid {cls} missing spec: {doc}")
        if not isinstance(source := spec.get("source"), dict) or not source:
            raise InputException(f"Invalid {cls} missing spec.source: {doc}")
        if not isinstance(target := spec.get("target") or {}, dict):
            raise InputException(f"Invalid {cls} spec.target must be a mapping: {doc}")
        try:
            return cls(
                name=name,
                namespace=metadata.get("namespace"),
                source=SourceSpec.from_dict(source),
                target=TargetRef.from_dict(target),
            )
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid {cls} spec: {err}") from err


@dataclass
class ResolvedSnapshot(BaseManifest):
    """A fetched source materialized on the local filesystem.

    The directory at `local_path` is owned by the caller.
    """

    identity: str
    """Commit sha for git, or a sha256 hex digest of ConfigMap contents."""

    local_path: str
    """Directory holding the manifest files."""

    description: str
    """Human readable provenance, e.g. the commit message."""


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ManifestDocument:
    """A single decoded document from a manifest file.

    The accessors read through to `raw` so they reflect any later mutation
    such as a namespace override.
    """

    raw: dict[str, Any]
    """The decoded object tree submitted to the cluster."""

    source_file: str
    """Path of the file the document was read from."""

    index: int = 0
    """Ordinal of the document within its file."""

    @classmethod
    def parse_doc(
        cls, doc: Any, source_file: str, index: int = 0
    ) -> "ManifestDocument":
        """Validate a decoded document and wrap it."""
        if not isinstance(doc, dict):
            raise InputException(
                f"Expected a mapping but found {type(doc).__name__}"
            )
        if not doc.get("apiVersion"):
            raise InputException("Invalid object missing apiVersion")
        if not doc.get("kind"):
            raise InputException("Invalid object missing kind")
        return cls(raw=doc, source_file=source_file, index=index)

    @property
    def kind(self) -> str:
        return str(self.raw["kind"])

    @property
    def api_version(self) -> str:
        return str(self.raw["apiVersion"])

    @property
    def metadata(self) -> dict[str, Any]:
        if not isinstance(metadata := self.raw.get("metadata"), dict):
            metadata = {}
            self.raw["metadata"] = metadata
        return metadata

    @property
    def name(self) -> str | None:
        if isinstance(metadata := self.raw.get("metadata"), dict):
            return metadata.get("name")
        return None

    @property
    def namespace(self) -> str | None:
        if isinstance(metadata := self.raw.get("metadata"), dict):
            return metadata.get("namespace")
        return None

    @namespace.setter
    def namespace(self, value: str) -> None:
        self.metadata["namespace"] = value

    @property
    def resource(self) -> NamedResource:
        """Identifier used when reporting on this document."""
        return NamedResource(self.kind, self.namespace, self.name or "")


@dataclass
class ConfigMap(BaseManifest):
    """A ConfigMap is an API object used to store data in key-value pairs."""

    kind: ClassVar[str] = CONFIG_MAP_KIND
    """The kind of the ConfigMap."""

    name: str
    """The name of the ConfigMap."""

    namespace: str | None = None
    """The namespace of the ConfigMap."""

    data: dict[str, str] | None = None
    """The data in the ConfigMap."""

    binary_data: dict[str, str] | None = None
    """The base64 encoded binary data in the ConfigMap."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ConfigMap":
        """Parse a config map object from a kubernetes resource."""
        _check_version(doc, "v1")
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid {cls} missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
        return ConfigMap(
            name=name,
            namespace=metadata.get("namespace"),
            data=doc.get("data"),
            binary_data=doc.get("binaryData"),
        )


@dataclass
class Secret(BaseManifest):
    """A Secret contains a small amount of sensitive data."""

    kind: ClassVar[str] = SECRET_KIND
    """The kind of the Secret."""

    name: str
    """The name of the Secret."""

    namespace: str | None = None
    """The namespace of the Secret."""

    data: dict[str, str] | None = field(metadata={"serialize": "omit"}, default=None)
    """The base64 encoded data in the Secret."""

    string_data: dict[str, str] | None = field(
        metadata={"serialize": "omit"}, default=None
    )
    """The string data in the Secret."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Secret":
        """Parse a secret object from a kubernetes resource."""
        _check_version(doc, "v1")
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid {cls} missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
        return Secret(
            name=name,
            namespace=metadata.get("namespace"),
            data=doc.get("data"),
            string_data=doc.get("stringData"),
        )

    def get(self, key: str) -> str | None:
        """Return the decoded value for a key, preferring stringData."""
        if self.string_data and key in self.string_data:
            return self.string_data[key]
        if self.data and key in self.data:
            return base64.b64decode(self.data[key]).decode("utf-8")
        return None


class ApplyOutcome(str, Enum):
    """Outcome of applying a single document."""

    APPLIED = "Applied"
    DRY_RUN_FAILED = "DryRunFailed"
    APPLY_FAILED = "ApplyFailed"


@dataclass(frozen=True)
class ApplyResult:
    """The result of applying a single document."""

    outcome: ApplyOutcome
    resource: NamedResource
    source_file: str
    error: str | None = None
