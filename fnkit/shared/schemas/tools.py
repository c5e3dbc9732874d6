"""Declaration schemas and their function-calling JSON form."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, Field, model_validator

PARAM_TYPES = ("string", "integer", "number", "boolean", "array")
ITEM_TYPES = ("string", "integer", "number", "boolean")

# Extension key holding a declared bash option spelling in functions.json
OPTION_KEY = "x-option"


class ParameterSpec(BaseModel):
    """Parameter definition for a declaration."""

    name: str
    type: str = "string"  # string, integer, number, boolean, array
    items: str | None = None  # element type when type == "array"
    description: str = ""
    required: bool = False
    is_flag: bool = False
    enum: list[Any] | None = None  # values typed like the parameter
    default: Any = None
    option: str | None = None  # bash spelling when not "--" + hyphenated name

    @model_validator(mode="after")
    def _check_shape(self) -> ParameterSpec:
        if self.type not in PARAM_TYPES:
            raise ValueError(f"parameter '{self.name}' has unknown type '{self.type}'")
        if self.is_flag:
            # Flags are boolean switches and never required
            self.type = "boolean"
            self.required = False
        if self.type == "array":
            self.items = self.items or "string"
            if self.items not in ITEM_TYPES:
                raise ValueError(f"parameter '{self.name}' has unknown item type '{self.items}'")
        else:
            self.items = None
        return self

    @property
    def is_array(self) -> bool:
        return self.type == "array"

    def to_property(self) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.items:
            prop["items"] = {"type": self.items}
        if self.enum:
            if self.items:
                prop["items"]["enum"] = list(self.enum)
            else:
                prop["enum"] = list(self.enum)
        if self.default is not None:
            prop["default"] = self.default
        if self.option:
            prop[OPTION_KEY] = self.option
        return prop

    @classmethod
    def from_property(cls, name: str, prop: dict[str, Any], required: bool) -> ParameterSpec:
        items = prop.get("items") or {}
        enum = prop.get("enum") or items.get("enum")
        kind = prop.get("type", "string")
        return cls(
            name=name,
            type=kind,
            items=items.get("type") if kind == "array" else None,
            description=prop.get("description", ""),
            required=required,
            is_flag=kind == "boolean" and not required,
            enum=enum,
            default=prop.get("default"),
            option=prop.get(OPTION_KEY),
        )


class Declaration(BaseModel):
    """A function-calling declaration for one tool or agent action."""

    name: str  # e.g. "get_weather" or "coder.write_file"
    description: str = Field(min_length=1)
    parameters: list[ParameterSpec] = []

    @model_validator(mode="after")
    def _unique_parameters(self) -> Declaration:
        seen: set[str] = set()
        for param in self.parameters:
            if param.name in seen:
                raise ValueError(f"'{self.name}' has duplicate parameter '{param.name}'")
            seen.add(param.name)
        return self

    def get_parameter(self, name: str) -> ParameterSpec | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    @property
    def cli_options(self) -> dict[str, str]:
        """Parameter name -> declared option, for names not spelled the default way."""
        return {p.name: p.option for p in self.parameters if p.option}

    @property
    def required_names(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def to_function_schema(self) -> dict[str, Any]:
        """Convert to the JSON function-calling format."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_property() for p in self.parameters},
                "required": self.required_names,
            },
        }

    @classmethod
    def from_function_schema(cls, data: dict[str, Any]) -> Declaration:
        params = data.get("parameters") or {}
        required = set(params.get("required") or [])
        return cls(
            name=data["name"],
            description=data["description"],
            parameters=[
                ParameterSpec.from_property(name, prop, name in required)
                for name, prop in (params.get("properties") or {}).items()
            ],
        )


class SchemaDocument:
    """Ordered name -> Declaration mapping persisted as ``functions.json``.

    Serialization is deterministic: the same declarations in the same order
    always produce the same bytes.
    """

    def __init__(self, declarations: Iterable[Declaration] = ()):
        self._declarations: dict[str, Declaration] = {}
        for declaration in declarations:
            self.add(declaration)

    def add(self, declaration: Declaration) -> None:
        if declaration.name in self._declarations:
            raise ValueError(f"duplicate declaration '{declaration.name}'")
        self._declarations[declaration.name] = declaration

    def get(self, name: str) -> Declaration | None:
        return self._declarations.get(name)

    def names(self) -> list[str]:
        return list(self._declarations)

    def __contains__(self, name: object) -> bool:
        return name in self._declarations

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations.values())

    def __len__(self) -> int:
        return len(self._declarations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaDocument):
            return NotImplemented
        return list(self) == list(other)

    def to_json(self) -> str:
        payload = [d.to_function_schema() for d in self]
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_json(cls, text: str) -> SchemaDocument:
        payload = json.loads(text)
        if not isinstance(payload, list):
            raise ValueError("schema document must be a JSON array of declarations")
        return cls(Declaration.from_function_schema(item) for item in payload)
