"""Column type registry with storage and UI defaults."""

from dataclasses import dataclass


@dataclass
class UIDefaults:
    display_component: str
    edit_component: str
    filter_component: str
    alignment: str = "left"
    format: str | None = None


@dataclass
class ColumnType:
    name: str
    storage_type: str  # "string" | "number" | "boolean" | "date" | "list"
    ui: UIDefaults
    faceted: bool = False


def _text(name: str, display: str = "Text", edit: str = "TextInput") -> ColumnType:
    return ColumnType(
        name=name,
        storage_type="string",
        ui=UIDefaults(
            display_component=display,
            edit_component=edit,
            filter_component="TextInput",
        ),
    )


def _number(name: str, edit: str = "NumberInput", format: str | None = None) -> ColumnType:
    return ColumnType(
        name=name,
        storage_type="number",
        ui=UIDefaults(
            display_component="Text",
            edit_component=edit,
            filter_component="NumberRange",
            alignment="right",
            format=format,
        ),
    )


# Built-in column types
COLUMN_TYPES: dict[str, ColumnType] = {
    "text": _text("text"),
    "email": _text("email"),
    "url": _text("url", display="UrlLink"),
    "person": _text("person", edit="PersonSelect"),
    "relation": _text("relation", edit="RelationSelect"),
    "file": _text("file", display="UrlLink"),
    "image": _text("image", display="Image"),
    "number": _number("number"),
    "currency": _number("currency", edit="CurrencyInput", format="$#,##0.00"),
    "percentage": _number("percentage", format="#,##0.##%"),
    "progress": _number("progress", edit="Slider"),
    "rating": _number("rating", edit="Rating"),
    "date": ColumnType(
        name="date",
        storage_type="date",
        ui=UIDefaults(
            display_component="Text",
            edit_component="DatePicker",
            filter_component="DateRangePicker",
            alignment="center",
            format="YYYY-MM-DD",
        ),
    ),
    "datetime": ColumnType(
        name="datetime",
        storage_type="date",
        ui=UIDefaults(
            display_component="Text",
            edit_component="DateTimePicker",
            filter_component="DateRangePicker",
            alignment="center",
            format="YYYY-MM-DD HH:mm",
        ),
    ),
    "boolean": ColumnType(
        name="boolean",
        storage_type="boolean",
        ui=UIDefaults(
            display_component="Badge",
            edit_component="Checkbox",
            filter_component="Select",
            alignment="center",
        ),
    ),
    "select": ColumnType(
        name="select",
        storage_type="string",
        ui=UIDefaults(
            display_component="Badge",
            edit_component="Select",
            filter_component="Select",
            alignment="center",
        ),
        faceted=True,
    ),
    "multi-select": ColumnType(
        name="multi-select",
        storage_type="list",
        ui=UIDefaults(
            display_component="Badges",
            edit_component="MultiSelect",
            filter_component="Select",
        ),
        faceted=True,
    ),
    "tags": ColumnType(
        name="tags",
        storage_type="list",
        ui=UIDefaults(
            display_component="Badges",
            edit_component="TagInput",
            filter_component="TextInput",
        ),
    ),
}


def get_column_type(type_name: str) -> ColumnType:
    """Get column type definition, defaulting to text if unknown."""
    return COLUMN_TYPES.get(type_name, COLUMN_TYPES["text"])


def is_numeric(type_name: str) -> bool:
    return get_column_type(type_name).storage_type == "number"


def is_list(type_name: str) -> bool:
    return get_column_type(type_name).storage_type == "list"
