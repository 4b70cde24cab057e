"""
Typed tool schemas for BrowserBot.

Provides Pydantic models for all browser tool arguments with validation.
Each model's JSON schema is what the model sees as the tool's parameters.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator


# =============================================================================
# Element targeting
# =============================================================================

def normalize_ref(value: str) -> str:
    """Strip brackets and a ref= prefix from a reference id."""
    value = value.strip().strip("[]")
    if value.startswith("ref="):
        value = value[len("ref="):]
    if not value:
        raise ValueError("ref cannot be empty")
    return value


class ElementTarget(BaseModel):
    """An element picked from the last snapshot."""

    element: str = Field(
        description="Human-readable description of the element, used for logging"
    )
    ref: str = Field(
        description="Exact reference id from the page snapshot, without brackets (e.g. e12)"
    )

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v: str) -> str:
        return normalize_ref(v)


# =============================================================================
# Browser Tool Schemas
# =============================================================================

class NavigateArgs(BaseModel):
    """Navigate to a URL."""

    url: str = Field(description="URL to navigate to")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("URL cannot be empty")
        if not v.startswith(("http://", "https://", "file://", "about:")):
            # Assume https if no protocol
            v = f"https://{v}"
        return v


class ClickArgs(ElementTarget):
    """Click an element."""

    double_click: bool = Field(default=False, description="Double-click instead of a single click")


class TypeArgs(ElementTarget):
    """Type text into an editable element."""

    text: str = Field(description="Text to type into the element")
    submit: bool = Field(default=False, description="Press Enter after typing")
    slowly: bool = Field(
        default=False,
        description="Type one character at a time to trigger key handlers",
    )


class FormField(BaseModel):
    """One field of a form fill."""

    name: str = Field(description="Human-readable field name")
    type: Literal["textbox", "checkbox", "radio", "combobox", "slider"] = Field(
        default="textbox",
        description="Type of the field",
    )
    ref: str = Field(description="Exact reference id of the field from the page snapshot")
    value: str = Field(
        description="Value to fill; 'true'/'false' for checkboxes, option text for comboboxes"
    )

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v: str) -> str:
        return normalize_ref(v)


class FillFormArgs(BaseModel):
    """Fill several form fields at once."""

    fields: list[FormField] = Field(description="Fields to fill in order")

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: list[FormField]) -> list[FormField]:
        if not v:
            raise ValueError("fields cannot be empty")
        return v


class SnapshotArgs(BaseModel):
    """Capture the accessibility snapshot of the current page."""


class ScreenshotArgs(BaseModel):
    """Take a screenshot of the current page."""

    filename: Optional[str] = Field(
        default=None,
        description="File name to save the screenshot to (defaults to a timestamped name)",
    )
    full_page: bool = Field(default=False, description="Capture the full scrollable page")


class WaitForArgs(BaseModel):
    """Wait for text to appear or disappear, or for a duration."""

    time: Optional[float] = Field(
        default=None,
        ge=0,
        description="Time to wait in seconds",
    )
    text: Optional[str] = Field(default=None, description="Text to wait for")
    text_gone: Optional[str] = Field(default=None, description="Text to wait to disappear")

    @property
    def is_duration_only(self) -> bool:
        """Only a duration was given."""
        return self.time is not None and not self.text and not self.text_gone


class PressKeyArgs(BaseModel):
    """Press a keyboard key."""

    key: str = Field(description="Key to press (e.g., 'Enter', 'Tab', 'ArrowDown')")

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Key cannot be empty")
        return v.strip()


class NavigateBackArgs(BaseModel):
    """Go back to the previous page."""


# =============================================================================
# Schema Registry
# =============================================================================

TOOL_SCHEMAS: dict[str, type[BaseModel]] = {
    "browser_navigate": NavigateArgs,
    "browser_click": ClickArgs,
    "browser_type": TypeArgs,
    "browser_fill_form": FillFormArgs,
    "browser_snapshot": SnapshotArgs,
    "browser_take_screenshot": ScreenshotArgs,
    "browser_wait_for": WaitForArgs,
    "browser_press_key": PressKeyArgs,
    "browser_navigate_back": NavigateBackArgs,
}

TOOL_DESCRIPTIONS: dict[str, str] = {
    "browser_navigate": "Navigate to a URL",
    "browser_click": "Perform a click on an element of the page",
    "browser_type": "Type text into an editable element",
    "browser_fill_form": "Fill multiple form fields",
    "browser_snapshot": "Capture an accessibility snapshot of the current page, "
                        "this is better than a screenshot",
    "browser_take_screenshot": "Take a screenshot of the current page. "
                               "You can't perform actions based on the screenshot, "
                               "use browser_snapshot for actions.",
    "browser_wait_for": "Wait for text to appear or disappear or a specified time to pass",
    "browser_press_key": "Press a key on the keyboard",
    "browser_navigate_back": "Go back to the previous page",
}


def get_schema_for_tool(name: str) -> Optional[type[BaseModel]]:
    """Get the Pydantic schema for a tool.

    Args:
        name: Tool name

    Returns:
        Schema class or None if not found
    """
    return TOOL_SCHEMAS.get(name)


def tool_input_schema(name: str) -> dict[str, Any]:
    """JSON schema for a tool's arguments."""
    schema = get_schema_for_tool(name)
    if schema is None:
        return {"type": "object", "properties": {}}
    return schema.model_json_schema()


def validate_tool_args(name: str, args: dict) -> tuple[bool, Optional[BaseModel], Optional[str]]:
    """Validate tool arguments against schema.

    Args:
        name: Tool name
        args: Arguments to validate

    Returns:
        Tuple of (is_valid, validated_model, error_message)
    """
    schema = get_schema_for_tool(name)
    if schema is None:
        return False, None, f"Unknown tool: {name}"

    try:
        validated = schema(**(args or {}))
        return True, validated, None
    except ValidationError as e:
        return False, None, str(e)
