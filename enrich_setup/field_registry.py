"""
Field schema registry.

Holds the preset catalog and the pure add/remove transitions that keep a
field selection within capacity and free of duplicate names. Selections are
tuples; every function returns a new tuple and never mutates its input.
"""

from typing import Iterable, Optional, Sequence, Tuple

from .constants import MAX_SELECTED_FIELDS
from .errors import DuplicateField, FieldCapacityExceeded, InvalidFieldInput
from .field_names import generate_field_name
from .models import EnrichmentField, FieldType

FieldSelection = Tuple[EnrichmentField, ...]


PRESET_FIELDS: FieldSelection = (
    EnrichmentField(
        name="companyName",
        display_name="Company Name",
        description="The name of the company",
    ),
    EnrichmentField(
        name="companyDescription",
        display_name="Company Description",
        description="A brief description of what the company does",
    ),
    EnrichmentField(
        name="industry",
        display_name="Industry",
        description="The primary industry the company operates in",
    ),
    EnrichmentField(
        name="employeeCount",
        display_name="Employee Count",
        description="The number of employees at the company",
        type=FieldType.NUMBER,
    ),
    EnrichmentField(
        name="yearFounded",
        display_name="Year Founded",
        description="The year the company was founded",
        type=FieldType.NUMBER,
    ),
    EnrichmentField(
        name="headquarters",
        display_name="Headquarters",
        description="The location of the company headquarters",
    ),
    EnrichmentField(
        name="revenue",
        display_name="Revenue",
        description="The annual revenue of the company",
    ),
    EnrichmentField(
        name="fundingRaised",
        display_name="Funding Raised",
        description="Total funding raised by the company",
    ),
    EnrichmentField(
        name="fundingStage",
        display_name="Funding Stage",
        description=(
            "The current funding stage (e.g., Pre-seed, Seed, Series A, Series B, "
            "Series C, Series D+, IPO)"
        ),
    ),
)

DEFAULT_FIELD_NAMES = ("companyName", "companyDescription", "industry")


def get_preset(name: str) -> Optional[EnrichmentField]:
    """Look up a preset field by its machine name."""
    for field in PRESET_FIELDS:
        if field.name == name:
            return field
    return None


def default_selection(names: Iterable[str] = DEFAULT_FIELD_NAMES) -> FieldSelection:
    """Preset fields that are selected when configuration starts."""
    selection: FieldSelection = ()
    for name in names:
        preset = get_preset(name)
        if preset is None:
            raise InvalidFieldInput(f"Unknown preset field: {name}")
        try:
            selection = add_field(selection, preset)
        except DuplicateField:
            continue
    return selection


def field_names(current: Sequence[EnrichmentField]) -> Tuple[str, ...]:
    return tuple(f.name for f in current)


def add_field(current: Sequence[EnrichmentField], field: EnrichmentField) -> FieldSelection:
    """
    Append `field` to the selection.

    Raises:
        FieldCapacityExceeded: The selection already holds MAX_SELECTED_FIELDS
        DuplicateField: A field with the same name is already selected
    """
    if len(current) >= MAX_SELECTED_FIELDS:
        raise FieldCapacityExceeded(MAX_SELECTED_FIELDS)
    if any(f.name == field.name for f in current):
        raise DuplicateField(field.name)
    return tuple(current) + (field,)


def remove_field(current: Sequence[EnrichmentField], name: str) -> FieldSelection:
    """Remove the field named `name`; removing an absent name is a no-op."""
    return tuple(f for f in current if f.name != name)


def toggle_preset(current: Sequence[EnrichmentField], name: str) -> FieldSelection:
    """Quick-add palette behaviour: deselect a selected preset, otherwise add it."""
    preset = get_preset(name)
    if preset is None:
        raise InvalidFieldInput(f"Unknown preset field: {name}")
    if any(f.name == name for f in current):
        return remove_field(current, name)
    return add_field(current, preset)


def build_custom_field(display_name: str, description: str,
                       field_type: FieldType = FieldType.STRING,
                       existing_names: Iterable[str] = ()) -> EnrichmentField:
    """
    Create a hand-authored field with a collision-free machine name.

    Raises:
        InvalidFieldInput: If the display name or description is blank
    """
    display_name = (display_name or "").strip()
    description = (description or "").strip()
    if not display_name or not description:
        raise InvalidFieldInput("Please fill in all fields")
    try:
        field_type = FieldType(field_type)
    except ValueError:
        raise InvalidFieldInput(f"Unsupported field type: {field_type}")

    return EnrichmentField(
        name=generate_field_name(display_name, existing_names),
        display_name=display_name,
        description=description,
        type=field_type,
    )
