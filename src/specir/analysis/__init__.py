"""Schema analysis: turn resolved document nodes into IR models.

Every builder here walks nodes handed out by a
:class:`~specir.parser.resolver.ReferenceResolver` and returns immutable
models from :mod:`specir.models`. Nothing in this package performs I/O.

Sub-modules:

* :mod:`~specir.analysis.composition` -- ``allOf`` merging and
  ``oneOf``/``anyOf`` polymorphic option discovery.
* :mod:`~specir.analysis.validation` -- validation rule extraction.
* :mod:`~specir.analysis.params` -- parameter serialization and request
  body variants.
* :mod:`~specir.analysis.security` -- security scheme normalisation and the
  operation-level override rule.
* :mod:`~specir.analysis.service_method` -- one service method model per
  operation.
* :mod:`~specir.analysis.form_model` -- recursive form control trees.
* :mod:`~specir.analysis.type_model` -- type models for component schemas.
"""

from specir.analysis.composition import get_polymorphic_options, merge_all_of
from specir.analysis.form_model import FormModelBuilder
from specir.analysis.params import build_body_variant, build_param_serialization
from specir.analysis.security import effective_security, normalize_security_schemes
from specir.analysis.service_method import ServiceMethodBuilder
from specir.analysis.type_model import TypeModelBuilder, type_expression
from specir.analysis.validation import extract_rules

__all__ = [
    "FormModelBuilder",
    "ServiceMethodBuilder",
    "TypeModelBuilder",
    "build_body_variant",
    "build_param_serialization",
    "effective_security",
    "extract_rules",
    "get_polymorphic_options",
    "merge_all_of",
    "normalize_security_schemes",
    "type_expression",
]
