from __future__ import annotations

"""Structured card payloads produced by the text model.

Abilities are a tagged variant keyed by `mechanicId`; each mechanic owns a
typed params model. Anything that does not validate here is treated as
unparsable model output by the caller.

Wire keys stay camelCase (the model is prompted with them and the client
renders them); Python attributes are snake_case.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .types import CARD_TYPES, KEYWORDS

Keyword = Literal[KEYWORDS]  # type: ignore[valid-type]
CardType = Literal[CARD_TYPES]  # type: ignore[valid-type]


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TargetParams(_Params):
    target: str = "any"


class AmountParams(_Params):
    target: str = "any"
    amount: int = Field(ge=0)


class AreaDamageParams(_Params):
    scope: str = "all_creatures"
    amount: int = Field(ge=0)


class LifeParams(_Params):
    player: str = "self"
    amount: int = Field(ge=0)


class CardCountParams(_Params):
    player: str = "self"
    count: int = Field(default=1, ge=0)


class BuffParams(_Params):
    target: str = "self"
    power: int = 0
    toughness: int = 0


class KeywordParams(_Params):
    target: str = "self"
    keyword: Keyword

    @field_validator("keyword", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.strip().upper().replace(" ", "_") if isinstance(v, str) else v


class ManaParams(_Params):
    resource: str
    amount: int = Field(default=1, ge=0)


class _Ability(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    flavored_text: str = Field(default="", alias="flavoredText")


class DealDamage(_Ability):
    mechanic_id: Literal["DEAL_DAMAGE"] = Field(alias="mechanicId")
    params: AmountParams


class DealDamageAoe(_Ability):
    mechanic_id: Literal["DEAL_DAMAGE_AOE"] = Field(alias="mechanicId")
    params: AreaDamageParams


class Heal(_Ability):
    mechanic_id: Literal["HEAL"] = Field(alias="mechanicId")
    params: AmountParams


class GainLife(_Ability):
    mechanic_id: Literal["GAIN_LIFE"] = Field(alias="mechanicId")
    params: LifeParams


class DrawCards(_Ability):
    mechanic_id: Literal["DRAW_CARDS"] = Field(alias="mechanicId")
    params: CardCountParams = Field(default_factory=CardCountParams)


class DiscardCards(_Ability):
    mechanic_id: Literal["DISCARD_CARDS"] = Field(alias="mechanicId")
    params: CardCountParams = Field(default_factory=lambda: CardCountParams(player="opponent"))


class Destroy(_Ability):
    mechanic_id: Literal["DESTROY"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class Exile(_Ability):
    mechanic_id: Literal["EXILE"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class ReturnToHand(_Ability):
    mechanic_id: Literal["RETURN_TO_HAND"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class BuffStats(_Ability):
    mechanic_id: Literal["BUFF_STATS"] = Field(alias="mechanicId")
    params: BuffParams = Field(default_factory=BuffParams)


class GrantKeyword(_Ability):
    mechanic_id: Literal["GRANT_KEYWORD"] = Field(alias="mechanicId")
    params: KeywordParams


class Tap(_Ability):
    mechanic_id: Literal["TAP"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class Untap(_Ability):
    mechanic_id: Literal["UNTAP"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class Copy(_Ability):
    mechanic_id: Literal["COPY"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=TargetParams)


class Counter(_Ability):
    mechanic_id: Literal["COUNTER"] = Field(alias="mechanicId")
    params: TargetParams = Field(default_factory=lambda: TargetParams(target="spell"))


class AddMana(_Ability):
    mechanic_id: Literal["ADD_MANA"] = Field(alias="mechanicId")
    params: ManaParams


Ability = Annotated[
    Union[
        DealDamage,
        DealDamageAoe,
        Heal,
        GainLife,
        DrawCards,
        DiscardCards,
        Destroy,
        Exile,
        ReturnToHand,
        BuffStats,
        GrantKeyword,
        Tap,
        Untap,
        Copy,
        Counter,
        AddMana,
    ],
    Field(discriminator="mechanic_id"),
]

ABILITY_LIST = TypeAdapter(List[Ability])


def _normalize_ability(raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    out = dict(raw)
    if "mechanicId" not in out and "mechanic_id" in out:
        out["mechanicId"] = out.pop("mechanic_id")
    if isinstance(out.get("mechanicId"), str):
        out["mechanicId"] = out["mechanicId"].strip().upper()
    return out


def dump_abilities(abilities: List[Any]) -> List[Dict[str, Any]]:
    return ABILITY_LIST.dump_python(abilities, by_alias=True, mode="json")


class GeneratedCard(BaseModel):
    """A card as returned by the text model, before persistence."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    card_type: CardType = Field(alias="cardType")
    mana_cost: str = Field(default="", alias="manaCost")
    power: Optional[int] = Field(default=None, ge=0)
    toughness: Optional[int] = Field(default=None, ge=0)
    abilities: List[Ability] = Field(default_factory=list)
    flavor_text: str = Field(default="", alias="flavorText")
    image_prompt: Optional[str] = Field(default=None, alias="imagePrompt")

    @field_validator("name", "mana_cost", "flavor_text", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("card_type", mode="before")
    @classmethod
    def _lower(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("abilities", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [_normalize_ability(a) for a in v]
        return v

    @model_validator(mode="after")
    def _stats_iff_creature(self) -> "GeneratedCard":
        if self.card_type == "creature":
            if self.power is None or self.toughness is None:
                raise ValueError("creature cards need power and toughness")
        else:
            # Models sometimes emit 0/0 for spells.
            self.power = None
            self.toughness = None
        return self

    def abilities_payload(self) -> List[Dict[str, Any]]:
        return dump_abilities(self.abilities)
