"""Typed step models for recorded automation manifests."""

from __future__ import annotations

from typing import Any, ClassVar, Literal, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

ASSERTION_TYPES: Tuple[str, ...] = ("ASSERT_URL", "ASSERT_TEXT", "ASSERT_VISIBLE")


class StepBase(BaseModel):
    """Base class for all recorded steps.

    Steps are immutable once parsed. The recorder attaches a number of
    bookkeeping fields (``delay``, ``time``, ``selectedText`` ...) which are
    ignored here.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    __step_type__: ClassVar[str]
    __requires_locator__: ClassVar[bool] = False

    xpath: Optional[str] = None
    id: Optional[str] = None
    url: Optional[str] = None
    name: Optional[str] = None
    placeholder: Optional[str] = None
    class_name: Optional[str] = Field(
        default=None,
        alias="className",
        validation_alias=AliasChoices("className", "class_name"),
    )
    text: Optional[str] = None
    tag_name: Optional[str] = Field(
        default=None,
        alias="tagName",
        validation_alias=AliasChoices("tagName", "tag_name"),
    )

    @field_validator("xpath", "id", "url", "name", "placeholder", "text", "tag_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            value = str(value)
        value = value.strip()
        return value or None

    @field_validator("class_name", mode="before")
    @classmethod
    def _svg_class_name(cls, value: Any) -> Any:
        # SVG elements report className as {baseVal, animVal}
        if isinstance(value, dict):
            value = value.get("baseVal")
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _check_locator(self) -> "StepBase":
        if self.__requires_locator__ and not self.has_locator():
            raise ValueError(f"{self.__step_type__} step requires a locator (xpath or id)")
        return self

    def has_locator(self) -> bool:
        if self.xpath or self.id or self.name or self.placeholder or self.class_name:
            return True
        return bool(self.text and self.tag_name)

    def describe_locator(self) -> str:
        if self.xpath:
            return f"xpath={self.xpath}"
        if self.id:
            return f"id={self.id}"
        if self.name:
            return f"name={self.name}"
        if self.placeholder:
            return f"placeholder={self.placeholder}"
        if self.class_name:
            return f"class={self.class_name}"
        if self.text and self.tag_name:
            return f"{self.tag_name.lower()} with text {self.text!r}"
        return "<page>"

    @property
    def step_type(self) -> str:
        return self.__step_type__

    @property
    def is_assertion(self) -> bool:
        return self.__step_type__ in ASSERTION_TYPES


class ClickStep(StepBase):
    __step_type__ = "CLICK"
    __requires_locator__ = True

    type: Literal["CLICK"] = "CLICK"


class InputStep(StepBase):
    __step_type__ = "INPUT"
    __requires_locator__ = True

    type: Literal["INPUT"] = "INPUT"
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)


class KeydownStep(StepBase):
    __step_type__ = "KEYDOWN"

    type: Literal["KEYDOWN"] = "KEYDOWN"
    key: str = "Enter"

    @field_validator("key", mode="before")
    @classmethod
    def _default_key(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return "Enter"
        return str(value)


class ScrollStep(StepBase):
    __step_type__ = "SCROLL"

    type: Literal["SCROLL"] = "SCROLL"
    scroll_x: Optional[float] = Field(
        default=None,
        alias="scrollX",
        validation_alias=AliasChoices("scrollX", "scroll_x"),
    )
    scroll_y: Optional[float] = Field(
        default=None,
        alias="scrollY",
        validation_alias=AliasChoices("scrollY", "scroll_y"),
    )


class _AssertValueStep(StepBase):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _require_value(cls, value: Any) -> str:
        text = "" if value is None else str(value)
        if not text.strip():
            raise ValueError("assertion value must not be empty")
        return text


class AssertUrlStep(_AssertValueStep):
    __step_type__ = "ASSERT_URL"

    type: Literal["ASSERT_URL"] = "ASSERT_URL"


class AssertTextStep(_AssertValueStep):
    __step_type__ = "ASSERT_TEXT"

    type: Literal["ASSERT_TEXT"] = "ASSERT_TEXT"


class AssertVisibleStep(StepBase):
    __step_type__ = "ASSERT_VISIBLE"
    __requires_locator__ = True

    type: Literal["ASSERT_VISIBLE"] = "ASSERT_VISIBLE"
    value: Optional[str] = None
