import inspect
from typing import Annotated, Any, Callable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _accepts_record(function: Callable) -> bool:
    """True when `function` takes a second positional argument for the record."""
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return False

    required = 0
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD) and param.default is param.empty:
            required += 1
    return required >= 2


class ConversionFunction(BaseModel):
    """Delegate that converts a matched node with a callable."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["function"] = "function"
    function: Callable[..., Any]
    accepts_record: bool = False

    @classmethod
    def of(cls, function: Callable) -> "ConversionFunction":
        return cls(function=function, accepts_record=_accepts_record(function))

    def __call__(self, node: Any, record: Any = None) -> Any:
        if self.accepts_record:
            return self.function(node, record)
        return self.function(node)


class NestedSchema(BaseModel):
    """Delegate that parses a matched node with another schema."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["schema"] = "schema"
    target: Any

    @classmethod
    def of(cls, schema: Any) -> "NestedSchema":
        return cls(target=schema)


Delegate = Annotated[Union[ConversionFunction, NestedSchema], Field(discriminator="kind")]


class Rule(BaseModel):
    """Binding of a selector to a named record property."""
    model_config = ConfigDict(frozen=True)

    selector: str
    property: str
    delegate: Optional[Delegate] = None
    plural: bool = False


class RuleDefinition(BaseModel):
    """One rule in a declarative schema file."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    property: str
    selector: Optional[str] = None
    plural: bool = False
    converter: Optional[str] = Field(default=None, alias="with")
    rules: Optional[List["RuleDefinition"]] = None

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v):
        if v is not None and not v:
            raise ValueError("Nested rules can't be empty")
        return v


class SchemaDefinition(BaseModel):
    """Declarative schema, as loaded from a JSON file."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    type: Literal["html", "json"] = "html"
    rules: List[RuleDefinition] = Field(
        ...,
        description="Rules in declaration order"
    )

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v):
        if not v:
            raise ValueError("At least one rule must be specified")
        return v
