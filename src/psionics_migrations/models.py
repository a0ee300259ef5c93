"""
Data models for psionic actors and items.

Stored documents keep the host system's camelCase keys; the models expose
snake_case attributes with the stored names as aliases. Unknown keys are
always preserved so that round-tripping a document never drops user data.
"""

from copy import deepcopy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from shortuuid import random

from .data import MODULE_ID, POWER_TYPE
from .errors import CorruptDocumentError


def new_id() -> str:
    """Generate a new random 16-character document id."""
    return random(length=16)


class StoredModel(BaseModel):
    """Base for models that mirror stored document data."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------------------------------------
# Augments
# ---------------------------------------------------------------------------


class AugmentEffects(StoredModel):
    """Modifiers an augment applies when it is activated."""
    damage_bonus: str | None = Field(default=None, alias="damageBonus")
    damage_mult: float | None = Field(default=None, alias="damageMult")
    duration_multiplier: float | None = Field(default=None, alias="durationMultiplier")
    dc_bonus: float | None = Field(default=None, alias="dcBonus")
    cl_bonus: float | None = Field(default=None, alias="clBonus")
    special: str | None = None


class Augment(StoredModel):
    """One configurable modifier of a power's behavior.

    Actions store augments as plain dicts; this model is the typed view used
    when augments need validating.
    """
    id: str = Field(alias="_id")
    name: str
    img: str | None = None
    description: str | None = None
    tag: str | None = None
    cost: float = Field(default=1, ge=0)
    max_uses: int | None = Field(default=None, alias="maxUses", ge=1)
    requires_focus: bool = Field(default=False, alias="requiresFocus")
    effects: AugmentEffects = Field(default_factory=AugmentEffects)


# ---------------------------------------------------------------------------
# Power item system data
# ---------------------------------------------------------------------------


class PowerDescription(StoredModel):
    value: str = ""
    instructions: str = ""


class PowerLinks(StoredModel):
    children: list[str] = Field(default_factory=list)


class PowerUses(StoredModel):
    per: str | None = None
    value: float | None = None
    max_formula: str | None = Field(default=None, alias="maxFormula")
    auto_deduct_charges_cost: str = Field(default="", alias="autoDeductChargesCost")
    recharge_formula: str | None = Field(default=None, alias="rechargeFormula")


class PowerChange(StoredModel):
    id: str = Field(default="", alias="_id")
    formula: str = ""
    target: str = ""
    type: str = ""
    operator: str | None = None
    priority: float | None = None
    continuous: bool | None = None


class ContextNote(StoredModel):
    target: str = ""
    text: str = ""


class SourceReference(StoredModel):
    title: str = ""
    pages: str = ""
    id: str = ""
    errata: str = ""
    date: str = ""
    publisher: str = ""


class ManifestTime(StoredModel):
    value: float = 1
    units: str = "standard"


class PowerDisplay(StoredModel):
    """Sensory displays produced when the power is manifested."""
    auditory: bool = False
    material: bool = False
    mental: bool = False
    olfactory: bool = False
    visual: bool = False


class PowerModifiers(StoredModel):
    cl: float | None = None
    sl: float | None = None


class PowerModel(StoredModel):
    """System data of a psionic power item."""
    description: PowerDescription = Field(default_factory=PowerDescription)
    tags: list[str] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    attack_notes: list[str] = Field(default_factory=list, alias="attackNotes")
    effect_notes: list[str] = Field(default_factory=list, alias="effectNotes")
    links: PowerLinks = Field(default_factory=PowerLinks)
    uses: PowerUses = Field(default_factory=PowerUses)
    changes: list[PowerChange] = Field(default_factory=list)
    context_notes: list[ContextNote] = Field(default_factory=list, alias="contextNotes")
    sources: list[SourceReference] = Field(default_factory=list)
    learned_at: dict[str, dict[str, int]] | None = Field(default=None, alias="learnedAt")
    discipline: str = "athanatism"
    subdiscipline: list[str] = Field(default_factory=list)
    descriptors: list[str] = Field(default_factory=list)
    level: int = 1
    manifest_time: ManifestTime = Field(default_factory=ManifestTime, alias="manifestTime")
    display: PowerDisplay = Field(default_factory=PowerDisplay)
    modifiers: PowerModifiers = Field(default_factory=PowerModifiers)
    known: bool = False
    prepared: bool = False
    manifester: str = "primary"
    sr: bool = True

    @classmethod
    def migrate_data(cls, source: Any) -> dict[str, Any]:
        """Bring stored power data up to the current shape.

        Runs on every load, before field validation. Power-level augments are
        relocated onto each action that has none of its own; the top-level
        ``augments`` key is always removed, even when no action could receive
        them. Each action gets an independent deep copy.

        Args:
            source: Raw ``system`` data of a power item. Mutated in place.

        Returns:
            The normalized data. Non-dict input yields an empty dict.

        Raises:
            CorruptDocumentError: If augments need relocating and ``actions``
                holds an entry that is null or not an object.
        """
        if not isinstance(source, dict):
            return {}

        augments = source.get("augments")
        actions = source.get("actions")
        if isinstance(augments, list) and augments and isinstance(actions, list):
            # Check every entry first so a corrupt document is left untouched
            for index, action in enumerate(actions):
                if action is None:
                    raise CorruptDocumentError(f"Power action at index {index} is null")
                if not isinstance(action, dict):
                    raise CorruptDocumentError(
                        f"Power action at index {index} is not an object: {type(action).__name__}"
                    )
            for action in actions:
                existing = action.get("augments")
                if isinstance(existing, list) and existing:
                    continue
                action["augments"] = deepcopy(augments)

        source.pop("augments", None)
        return source

    @model_validator(mode="before")
    @classmethod
    def _migrate_stored_data(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return cls.migrate_data(data)
        return data

    def augments_for(self, action_index: int) -> list[Augment]:
        """Typed augments of one action."""
        raw = self.actions[action_index].get("augments") or []
        return [Augment.model_validate(augment) for augment in raw]


# ---------------------------------------------------------------------------
# Flag namespace
# ---------------------------------------------------------------------------


class FormulaNote(StoredModel):
    formula: str = ""
    notes: str = ""


class ManifesterPowerPoints(StoredModel):
    max: float = 0
    formula: str = ""


class Manifester(StoredModel):
    """One manifesting class slot of an actor."""
    name: str = ""
    in_use: bool = Field(default=False, alias="inUse")
    show_config: bool = Field(default=False, alias="showConfig")
    caster_type: str = Field(default="high", alias="casterType")
    class_: str = Field(default="", alias="class")
    cl: FormulaNote = Field(default_factory=FormulaNote)
    concentration: FormulaNote = Field(default_factory=FormulaNote)
    ability: str = "int"
    auto_level_power_points: bool = Field(default=True, alias="autoLevelPowerPoints")
    auto_attribute_power_points: bool = Field(default=True, alias="autoAttributePowerPoints")
    auto_max_power_level: bool = Field(default=True, alias="autoMaxPowerLevel")
    has_cantrips: bool = Field(default=True, alias="hasCantrips")
    spell_preparation_mode: str = Field(default="spontaneous", alias="spellPreparationMode")
    base_dc_formula: str = Field(default="10 + @sl + @ablMod", alias="baseDCFormula")
    power_points: ManifesterPowerPoints = Field(
        default_factory=ManifesterPowerPoints, alias="powerPoints"
    )


class PowerPoints(StoredModel):
    current: float = 0
    temporary: float = 0
    maximum: float = 0


class PsionicFocus(StoredModel):
    current: float = 0
    maximum: float = 0


class PsionicsFlags(StoredModel):
    """The module's flag namespace on an actor.

    Every key is optional: a freshly imported actor has none of them until
    the migrations add the defaults.
    """
    manifesters: dict[str, Manifester] | None = None
    manifestors: dict[str, Manifester] | None = None  # Legacy name, kept until cleanup
    power_points: PowerPoints | None = Field(default=None, alias="powerPoints")
    focus: PsionicFocus | None = None
    augment_uses: dict[str, int] | None = Field(default=None, alias="augmentUses")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Item(StoredModel):
    """An item document. Power items get their system data normalized on load."""
    id: str = Field(default_factory=new_id, alias="_id")
    name: str = ""
    type: str
    img: str | None = None
    system: dict[str, Any] = Field(default_factory=dict)
    flags: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize_power_system(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("type") == POWER_TYPE and "system" in data:
            data["system"] = PowerModel.migrate_data(data["system"])
        return data

    @property
    def is_power(self) -> bool:
        return self.type == POWER_TYPE

    @property
    def power(self) -> PowerModel | None:
        """Typed system data, or None for items that are not powers."""
        if not self.is_power:
            return None
        return PowerModel.model_validate(deepcopy(self.system))


class Actor(StoredModel):
    """An actor document.

    Owned items stay raw here; each one is materialized on its own so that a
    single corrupt item cannot make the whole actor unloadable.
    """
    id: str = Field(default_factory=new_id, alias="_id")
    name: str = ""
    type: str
    img: str | None = None
    system: dict[str, Any] = Field(default_factory=dict)
    flags: dict[str, dict[str, Any]] = Field(default_factory=dict)
    items: list[Any] = Field(default_factory=list)

    @property
    def psionics(self) -> PsionicsFlags:
        """Validated view of this module's flag namespace."""
        return PsionicsFlags.model_validate(deepcopy(self.flags.get(MODULE_ID, {})))
