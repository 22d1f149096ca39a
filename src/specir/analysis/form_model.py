"""Build a recursive, polymorphism-aware form control tree for one schema.

Given a component schema name, :class:`FormModelBuilder` produces a
:class:`~specir.models.FormAnalysisResult`:

* objects become ``group`` controls with one child per writable property,
* arrays become ``array`` controls carrying an item template
  (``nested_controls`` for object items, ``array_item_control`` for
  primitives),
* everything else becomes a ``control`` carrying its validation rules.

Each expanded object schema gets a form interface name. The builder keeps an
identity map from schema node to that name; when the walk reaches a node
that already has one, it emits a reference to the existing interface
instead of expanding the node again. A ``Node`` whose ``children`` are
``Node[]`` therefore yields a ``children`` array pointing at ``NodeForm``.
Interface names are derived from property names; two different schemas
under the same property name get ``AddressForm`` and ``AddressForm2``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from specir.analysis.composition import merge_all_of, schema_type
from specir.analysis.type_model import component_name, type_expression
from specir.analysis.validation import extract_rules, uses_custom_validators
from specir.exceptions import UnresolvedReferenceError
from specir.models import (
    FormAnalysisResult,
    FormControlModel,
    FormInterface,
    PolymorphicOption,
    PolymorphicOptionModel,
)
from specir.naming import pascal_case, singular

if TYPE_CHECKING:
    from specir.parser.spec_parser import SpecParser

logger = logging.getLogger(__name__)


def _is_read_only(raw: Any, resolved: Any) -> bool:
    return any(isinstance(node, dict) and node.get("readOnly") for node in (raw, resolved))


def _is_object_like(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    has_shape = bool(schema.get("properties") or schema.get("allOf"))
    return has_shape and schema_type(schema) in (None, "object")


class FormModelBuilder:
    """Builds :class:`~specir.models.FormAnalysisResult` values.

    A builder instance may be reused; all per-schema state is reset by
    :meth:`build`.
    """

    def __init__(self, parser: SpecParser) -> None:
        self.parser = parser
        self.resolver = parser.resolver
        self._reset()

    def _reset(self) -> None:
        self._interfaces: list[FormInterface] = []
        self._generated: dict[int, str] = {}
        self._uses_custom_validators = False
        self._has_form_arrays = False
        self._has_file_uploads = False

    def build(self, schema_name: str) -> FormAnalysisResult:
        """Analyse component schema *schema_name*.

        Raises:
            UnresolvedReferenceError: If no such component schema exists, or
                a reference inside it cannot be resolved.
        """
        raw = self.parser.get_definition(schema_name)
        if raw is None:
            raise UnresolvedReferenceError(
                self.parser.component_ref(schema_name), self.parser.entry_uri, "schema is not defined"
            )
        self._reset()
        root = self.resolver.resolve(raw)
        interface_name = f"{pascal_case(schema_name)}Form"

        discriminator_prop: Optional[str] = None
        options: list[PolymorphicOption] = []
        if isinstance(root, dict):
            discriminator = root.get("discriminator")
            options = self.parser.get_polymorphic_schema_options(root)
            if options and isinstance(discriminator, dict):
                discriminator_prop = discriminator.get("propertyName")

        self._claim(root, interface_name)
        composed = merge_all_of(root, self.resolver)
        top_level = self._controls(
            composed.properties,
            composed.required,
            interface_name,
            is_top_level=True,
            exclude=discriminator_prop,
        )

        polymorphic_options = self._option_models(options, discriminator_prop) if options else []
        default_option = None
        if isinstance(root, dict) and isinstance(root.get("discriminator"), dict):
            default_option = self._default_option(root["discriminator"], polymorphic_options)

        return FormAnalysisResult(
            schema_name=schema_name,
            form_interface_name=interface_name,
            interfaces=self._interfaces,
            top_level_controls=top_level,
            uses_custom_validators=self._uses_custom_validators,
            has_form_arrays=self._has_form_arrays,
            has_file_uploads=self._has_file_uploads,
            is_polymorphic=len(options) > 0,
            discriminator_prop_name=discriminator_prop,
            discriminator_options=[option.name for option in options],
            polymorphic_options=polymorphic_options,
            default_polymorphic_option=default_option,
        )

    def _claim(self, schema: Any, base: str) -> str:
        """Record *schema* as generated under *base*, suffixed ``2``, ``3``... if taken."""
        taken = set(self._generated.values())
        name = base
        counter = 1
        while name in taken:
            counter += 1
            name = f"{base}{counter}"
        self._generated[id(schema)] = name
        return name

    # --- controls ---

    def _controls(
        self,
        properties: dict[str, Any],
        required: list[str],
        interface_name: str,
        *,
        is_top_level: bool = False,
        exclude: Optional[str] = None,
        register: bool = True,
    ) -> list[FormControlModel]:
        controls: list[FormControlModel] = []
        for name, raw in properties.items():
            if name == exclude:
                continue
            resolved = self.resolver.resolve(raw)
            if _is_read_only(raw, resolved):
                continue
            controls.append(self._control(name, raw, resolved, name in required))

        if register:
            self._interfaces.append(
                FormInterface(
                    name=interface_name,
                    properties=[control.name for control in controls],
                    is_top_level=is_top_level,
                )
            )
        return controls

    def _control(self, name: str, raw: Any, resolved: Any, required: bool) -> FormControlModel:
        rules = extract_rules(resolved, required=required, resolver=self.resolver)
        if uses_custom_validators(rules):
            self._uses_custom_validators = True
        schema = resolved if isinstance(resolved, dict) else {}
        if schema.get("format") == "binary":
            self._has_file_uploads = True
        default_value = schema.get("default")

        options = self.parser.get_polymorphic_schema_options(resolved) if schema else []
        if options and (
            schema.get("discriminator") or any(_is_object_like(option.schema_) for option in options)
        ):
            discriminator = schema.get("discriminator")
            prop = discriminator.get("propertyName") if isinstance(discriminator, dict) else None
            existing = self._generated.get(id(resolved))
            if existing is not None:
                return FormControlModel(
                    name=name,
                    property_name=name,
                    control_type="group",
                    data_type=type_expression(raw, self.resolver),
                    default_value=default_value,
                    validation_rules=rules,
                    nested_form_interface=existing,
                    is_recursive_reference=True,
                    schema=resolved,
                )
            nested_name = self._claim(resolved, f"{pascal_case(name)}Form")
            composed = merge_all_of(resolved, self.resolver)
            return FormControlModel(
                name=name,
                property_name=name,
                control_type="group",
                data_type=type_expression(raw, self.resolver),
                default_value=default_value,
                validation_rules=rules,
                nested_form_interface=nested_name,
                nested_controls=self._controls(
                    composed.properties, composed.required, nested_name, exclude=prop
                ),
                polymorphic_options=self._option_models(options, prop),
                schema=resolved,
            )

        if _is_object_like(schema):
            nested_name, nested = self._expand(resolved, f"{pascal_case(name)}Form")
            return FormControlModel(
                name=name,
                property_name=name,
                control_type="group",
                data_type=nested_name,
                default_value=default_value,
                validation_rules=rules,
                nested_form_interface=nested_name,
                nested_controls=nested,
                is_recursive_reference=nested is None,
                schema=resolved,
            )

        if schema_type(schema) == "array":
            return self._array_control(name, raw, schema, rules, default_value)

        return FormControlModel(
            name=name,
            property_name=name,
            control_type="control",
            data_type=type_expression(raw, self.resolver),
            default_value=default_value,
            validation_rules=rules,
            schema=resolved,
        )

    def _array_control(
        self,
        name: str,
        raw: Any,
        schema: dict[str, Any],
        rules: list,
        default_value: Any,
    ) -> FormControlModel:
        items_raw = schema.get("items")
        items = self.resolver.resolve(items_raw)

        if _is_object_like(items):
            self._has_form_arrays = True
            item_name, nested = self._expand(items, f"{pascal_case(singular(name))}Form")
            return FormControlModel(
                name=name,
                property_name=name,
                control_type="array",
                data_type=f"{item_name}[]",
                default_value=default_value,
                validation_rules=rules,
                nested_form_interface=item_name,
                nested_controls=nested,
                is_recursive_reference=nested is None,
                schema=schema,
            )

        item_control = None
        if isinstance(items, dict):
            if items.get("format") == "binary":
                self._has_file_uploads = True
            item_control = FormControlModel(
                name=singular(name),
                property_name=name,
                control_type="control",
                data_type=type_expression(items_raw, self.resolver),
                validation_rules=extract_rules(items, resolver=self.resolver),
                schema=items,
            )
        return FormControlModel(
            name=name,
            property_name=name,
            control_type="array",
            data_type=type_expression(raw, self.resolver),
            default_value=default_value,
            validation_rules=rules,
            array_item_control=item_control,
            schema=schema,
        )

    def _expand(
        self, schema: dict[str, Any], interface_name: str
    ) -> tuple[str, Optional[list[FormControlModel]]]:
        """Expand an object schema once; later visits get the existing interface name."""
        existing = self._generated.get(id(schema))
        if existing is not None:
            logger.debug("Schema already generated as %s; emitting a reference", existing)
            return existing, None
        interface_name = self._claim(schema, interface_name)
        composed = merge_all_of(schema, self.resolver)
        return interface_name, self._controls(composed.properties, composed.required, interface_name)

    # --- polymorphism ---

    def _option_models(
        self,
        options: list[PolymorphicOption],
        discriminator_prop: Optional[str],
    ) -> list[PolymorphicOptionModel]:
        models: list[PolymorphicOptionModel] = []
        for option in options:
            composed = merge_all_of(option.schema_, self.resolver)
            model_name = component_name(option.ref) if option.ref else None
            controls = self._controls(
                composed.properties,
                composed.required,
                f"{model_name or pascal_case(option.name)}Form",
                exclude=discriminator_prop,
                register=False,
            )
            models.append(
                PolymorphicOptionModel(
                    discriminator_value=option.name,
                    model_name=model_name or pascal_case(option.name),
                    sub_form_name=option.name.lower(),
                    controls=controls,
                )
            )
        return models

    @staticmethod
    def _default_option(
        discriminator: dict[str, Any],
        options: list[PolymorphicOptionModel],
    ) -> Optional[str]:
        default_mapping = discriminator.get("defaultMapping")
        if not isinstance(default_mapping, str):
            return None
        name = pascal_case(default_mapping.rstrip("/").rsplit("/", 1)[-1])
        if any(option.model_name == name for option in options):
            return name
        return None
