"""Canonical Pydantic models shared across all specir modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- resolved by :mod:`specir.config`:
    :class:`LoaderConfig`, :class:`AnalysisConfig`, :class:`GeneratorConfig`.

**Parser output models** -- produced by :mod:`specir.parser` from the raw
document: :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`Parameter`,
:class:`RequestBody`, :class:`PathInfo`, :class:`SecurityScheme`,
:class:`PolymorphicOption`, :class:`ComposedSchema`.

**IR models** -- built by :mod:`specir.analysis` and consumed by emitters:
the :data:`ValidationRule` union, :class:`ParamSerialization`, the
:data:`BodyVariant` union, :class:`ServiceMethodModel`,
:class:`FormControlModel`, :class:`PolymorphicOptionModel`,
:class:`FormAnalysisResult`, :class:`TypeModel`.

Every IR model is frozen. Fields that carry raw schema nodes are typed
``Any`` so Pydantic stores the node itself rather than a validated copy;
consumers rely on identity of those nodes (see
:class:`~specir.parser.resolver.ReferenceResolver`).
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class LoaderConfig(BaseModel):
    """Settings for fetching documents over HTTP or from disk."""

    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = True
    preload_external_refs: bool = Field(
        default=True,
        description="Load every externally referenced document right after the entry document",
    )


class AnalysisConfig(BaseModel):
    """Settings that tune IR building without changing OpenAPI semantics."""

    default_controller: str = Field(
        default="Default",
        description="Controller name for untagged operations on the root path",
    )
    warn_on_stale_mapping: bool = Field(
        default=False,
        description="Log dropped discriminator options at WARNING instead of DEBUG",
    )
    xml_config_depth: int = Field(default=5, ge=1)


class GeneratorConfig(BaseModel):
    """Effective configuration for one generation run.

    Resolved by :func:`~specir.config.resolve_config` from defaults, the
    project file, environment variables and explicit overrides.
    """

    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)


# --- Parser Output Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised on OpenAPI path-item objects (``query`` is OAS 3.2)."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"
    QUERY = "query"


class ParameterLocation(str, enum.Enum):
    """Locations where a parameter can appear, per OpenAPI ``in`` field.

    ``formData`` only exists in Swagger 2.0 documents and is carried through
    so the body builder can produce an ``encoded-form-data`` variant.
    """

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    QUERYSTRING = "querystring"
    FORM_DATA = "formData"


class Parameter(BaseModel):
    """A single parameter after path/operation merging and ``$ref`` resolution."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Any = Field(default=None, alias="schema")
    content: Optional[dict[str, Any]] = None
    style: Optional[str] = None
    explode: Optional[bool] = None
    allow_reserved: Optional[bool] = None
    allow_empty_value: Optional[bool] = None
    deprecated: bool = False
    extensions: dict[str, Any] = Field(default_factory=dict)


class RequestBody(BaseModel):
    """A resolved OpenAPI *Request Body Object*; ``content`` maps media type to media object."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    description: Optional[str] = None
    content: Optional[dict[str, Any]] = None


class PathInfo(BaseModel):
    """One flattened operation: a (path, method) pair with merged parameters.

    ``security`` is ``None`` when the operation does not declare the keyword
    and a (possibly empty) list when it does; an explicit empty list means
    "no auth required" and must not fall back to the global requirement.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: str
    operation_id: Optional[str] = None
    method_name: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: dict[str, Any] = Field(default_factory=dict)
    security: Optional[list[dict[str, list[str]]]] = None
    servers: Optional[list[dict[str, Any]]] = None
    callbacks: Optional[dict[str, Any]] = None
    consumes: Optional[list[str]] = None
    external_docs: Optional[dict[str, Any]] = None
    deprecated: bool = False
    is_webhook: bool = False
    extensions: dict[str, Any] = Field(default_factory=dict)


class SecurityScheme(BaseModel):
    """An OpenAPI *Security Scheme Object*, normalised across Swagger 2.0 and OAS 3.x.

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``,
    ``openIdConnect`` and ``mutualTLS``. Only the fields relevant to the
    scheme type are populated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str
    description: Optional[str] = None
    # apiKey
    param_name: Optional[str] = Field(default=None, alias="in_name")
    location: Optional[str] = Field(default=None, alias="in_location")
    # http
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    # oauth2
    flows: Optional[dict[str, Any]] = None
    # openIdConnect
    openid_connect_url: Optional[str] = None
    deprecated: bool = False

    @property
    def uses_scopes(self) -> bool:
        """Whether requirements on this scheme carry meaningful scope lists."""
        return self.type in ("oauth2", "openIdConnect")


class PolymorphicOption(BaseModel):
    """One concrete alternative of a polymorphic schema (raw node kept by identity)."""

    model_config = ConfigDict(frozen=True)

    name: str
    schema_: Any = Field(alias="schema")
    ref: Optional[str] = None


class ComposedSchema(BaseModel):
    """Property set obtained by flattening ``allOf`` members of a schema.

    ``properties`` preserves first-seen key order; values are raw schema
    nodes. ``required`` is the order-preserving union of every member's
    ``required`` array.
    """

    model_config = ConfigDict(frozen=True)

    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    is_cyclic: bool = False


# --- Validation Rules ---


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)


class RequiredRule(_Rule):
    type: Literal["required"] = "required"


class ConstRule(_Rule):
    type: Literal["const"] = "const"
    value: Any = None


class MinLengthRule(_Rule):
    type: Literal["minLength"] = "minLength"
    value: int


class MaxLengthRule(_Rule):
    type: Literal["maxLength"] = "maxLength"
    value: int


class PatternRule(_Rule):
    type: Literal["pattern"] = "pattern"
    value: str


class EmailRule(_Rule):
    type: Literal["email"] = "email"


class MinRule(_Rule):
    type: Literal["min"] = "min"
    value: Union[int, float]


class MaxRule(_Rule):
    type: Literal["max"] = "max"
    value: Union[int, float]


class ExclusiveMinimumRule(_Rule):
    type: Literal["exclusiveMinimum"] = "exclusiveMinimum"
    value: Union[int, float]


class ExclusiveMaximumRule(_Rule):
    type: Literal["exclusiveMaximum"] = "exclusiveMaximum"
    value: Union[int, float]


class MultipleOfRule(_Rule):
    type: Literal["multipleOf"] = "multipleOf"
    value: Union[int, float]


class UniqueItemsRule(_Rule):
    type: Literal["uniqueItems"] = "uniqueItems"


class MinItemsRule(_Rule):
    type: Literal["minItems"] = "minItems"
    value: int


class MaxItemsRule(_Rule):
    type: Literal["maxItems"] = "maxItems"
    value: int


class MinPropertiesRule(_Rule):
    type: Literal["minProperties"] = "minProperties"
    value: int


class MaxPropertiesRule(_Rule):
    type: Literal["maxProperties"] = "maxProperties"
    value: int


class ContainsRule(_Rule):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["contains"] = "contains"
    schema_: Any = Field(default=None, alias="schema")
    min: Union[int, float] = 1
    max: Optional[Union[int, float]] = None


class NotRule(_Rule):
    type: Literal["not"] = "not"
    rules: list[ValidationRule]


ValidationRule = Annotated[
    Union[
        RequiredRule,
        ConstRule,
        MinLengthRule,
        MaxLengthRule,
        PatternRule,
        EmailRule,
        MinRule,
        MaxRule,
        ExclusiveMinimumRule,
        ExclusiveMaximumRule,
        MultipleOfRule,
        UniqueItemsRule,
        MinItemsRule,
        MaxItemsRule,
        MinPropertiesRule,
        MaxPropertiesRule,
        ContainsRule,
        NotRule,
    ],
    Field(discriminator="type"),
]
"""Tagged union of every validation rule variant, discriminated on ``type``."""


# --- Parameter / Body IR ---


class ParamSerialization(BaseModel):
    """How one path/query/header/cookie parameter is put on the wire.

    ``style`` and ``explode`` always hold effective values: when the document
    leaves them unset they carry the location defaults (``form`` for
    query/cookie, ``simple`` for path/header).
    """

    model_config = ConfigDict(frozen=True)

    param_name: str
    original_name: str
    style: Optional[str] = None
    explode: bool
    allow_reserved: bool = False
    serialization_link: Optional[Literal["json"]] = None


class MultipartPart(BaseModel):
    """Encoding of one multipart property.

    ``serialization`` is ``json`` for a JSON-encoded Blob part, ``binary`` for
    file-like parts and ``value`` for plain form values.
    """

    model_config = ConfigDict(frozen=True)

    content_type: Optional[str] = None
    headers: dict[str, Any] = Field(default_factory=dict)
    style: Optional[str] = None
    explode: Optional[bool] = None
    allow_reserved: Optional[bool] = None
    serialization: Literal["json", "binary", "value"] = "value"


class JsonBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["json"] = "json"
    param_name: str
    media_type: str = "application/json"


class XmlBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["xml"] = "xml"
    param_name: str
    root_name: str
    config: dict[str, Any] = Field(default_factory=dict)


class MultipartBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["multipart"] = "multipart"
    param_name: str
    media_type: str = "multipart/form-data"
    encoding: dict[str, MultipartPart] = Field(default_factory=dict)
    prefix_encoding: Optional[list[MultipartPart]] = None
    item_encoding: Optional[MultipartPart] = None


class UrlencodedBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["urlencoded"] = "urlencoded"
    param_name: str
    config: dict[str, Any] = Field(default_factory=dict)


class RawBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["raw"] = "raw"
    param_name: str
    media_type: Optional[str] = None


class EncodedFormDataBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["encoded-form-data"] = "encoded-form-data"
    param_name: str
    mappings: list[str] = Field(default_factory=list)


BodyVariant = Annotated[
    Union[JsonBody, XmlBody, MultipartBody, UrlencodedBody, RawBody, EncodedFormDataBody],
    Field(discriminator="type"),
]
"""Tagged union of request body encodings, discriminated on ``type``."""


class ErrorResponseInfo(BaseModel):
    """A non-success response declared on an operation."""

    model_config = ConfigDict(frozen=True)

    code: str
    media_type: Optional[str] = None
    schema_: Any = Field(default=None, alias="schema")
    description: Optional[str] = None


ResponseSerialization = Literal[
    "json", "text", "blob", "sse", "json-seq", "json-lines", "xml"
]


class ServiceMethodModel(BaseModel):
    """Framework-agnostic description of one service method (one operation)."""

    model_config = ConfigDict(frozen=True)

    method_name: str
    http_method: str
    url_template: str
    docs: Optional[str] = None
    is_deprecated: bool = False

    path_params: list[ParamSerialization] = Field(default_factory=list)
    query_params: list[ParamSerialization] = Field(default_factory=list)
    header_params: list[ParamSerialization] = Field(default_factory=list)
    cookie_params: list[ParamSerialization] = Field(default_factory=list)
    body: Optional[BodyVariant] = None

    response_serialization: ResponseSerialization = "json"
    success_code: Optional[str] = None
    error_responses: list[ErrorResponseInfo] = Field(default_factory=list)

    security: list[dict[str, list[str]]] = Field(default_factory=list)
    has_servers: bool = False
    base_path: Optional[str] = None
    extensions: dict[str, Any] = Field(default_factory=dict)


# --- Form / Type IR ---


ControlType = Literal["control", "group", "array"]


class FormControlModel(BaseModel):
    """Recursive control tree node for UI-form emitters.

    Groups carry ``nested_controls``; arrays of objects carry the item
    template in ``nested_controls``; arrays of primitives carry
    ``array_item_control``. When expansion stopped at an already generated
    schema, ``nested_controls`` is ``None`` and ``nested_form_interface``
    names the interface generated earlier.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    property_name: str
    control_type: ControlType
    data_type: str
    default_value: Any = None
    validation_rules: list[ValidationRule] = Field(default_factory=list)
    nested_form_interface: Optional[str] = None
    nested_controls: Optional[list[FormControlModel]] = None
    array_item_control: Optional[FormControlModel] = None
    polymorphic_options: list[PolymorphicOptionModel] = Field(default_factory=list)
    is_recursive_reference: bool = False
    schema_: Any = Field(default=None, alias="schema", exclude=True)


class PolymorphicOptionModel(BaseModel):
    """One concrete subtype of a discriminated union and its own control list."""

    model_config = ConfigDict(frozen=True)

    discriminator_value: str
    model_name: str
    sub_form_name: str
    controls: list[FormControlModel] = Field(default_factory=list)


class FormInterface(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    properties: list[str] = Field(default_factory=list)
    is_top_level: bool = False


class FormAnalysisResult(BaseModel):
    """Everything a form emitter needs for one root schema."""

    model_config = ConfigDict(frozen=True)

    schema_name: str
    form_interface_name: str
    interfaces: list[FormInterface] = Field(default_factory=list)
    top_level_controls: list[FormControlModel] = Field(default_factory=list)
    uses_custom_validators: bool = False
    has_form_arrays: bool = False
    has_file_uploads: bool = False
    is_polymorphic: bool = False
    discriminator_prop_name: Optional[str] = None
    discriminator_options: list[str] = Field(default_factory=list)
    polymorphic_options: list[PolymorphicOptionModel] = Field(default_factory=list)
    default_polymorphic_option: Optional[str] = None


class TypeProperty(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    required: bool = False
    nullable: bool = False
    read_only: bool = False
    write_only: bool = False
    description: Optional[str] = None


class TypeModel(BaseModel):
    """Name and shape of one component schema, for type emitters."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: Literal["interface", "enum", "alias"]
    properties: list[TypeProperty] = Field(default_factory=list)
    extends: list[str] = Field(default_factory=list)
    enum_values: list[Any] = Field(default_factory=list)
    type_expression: Optional[str] = None
    discriminator: Optional[str] = None
    description: Optional[str] = None


NotRule.model_rebuild()
FormControlModel.model_rebuild()
PolymorphicOptionModel.model_rebuild()
FormAnalysisResult.model_rebuild()
