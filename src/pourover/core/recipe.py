"""Recipe model: pour stages, amount parsing, and coffee/water/ratio rescaling."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_AMOUNT_RE = re.compile(r"\d+(?:\.\d+)?")
_RATIO_RE = re.compile(r"1:(\d+(?:\.\d+)?)")


class RecipeError(ValueError):
    """Base class for recipes that cannot be turned into a schedule."""


class EmptyRecipe(RecipeError):
    """Raised when a recipe has no stages."""


class InvalidStageOrder(RecipeError):
    """Raised when stage target times are not strictly increasing."""


class InvalidPourTime(RecipeError):
    """Raised when an explicit pour time does not fit inside its stage."""


class InvalidWaterAmount(RecipeError):
    """Raised when a water target carries no number."""


@dataclass(frozen=True)
class Stage:
    """One step of a recipe, as supplied by the recipe source.

    ``target_time`` and ``target_water`` are cumulative from the start of the
    brew.  ``pour_time`` is the explicit pour duration inside the stage; when
    ``None`` the expander applies its default policy.
    """

    label: str
    target_time: int
    target_water: str
    detail: str = ""
    pour_time: int | None = None

    @property
    def water_amount(self) -> float:
        return parse_amount(self.target_water)


@dataclass(frozen=True)
class Recipe:
    """A brewing method: dose, total water, brew ratio, and its stages."""

    name: str
    coffee: str
    water: str
    ratio: str
    stages: tuple[Stage, ...] = field(default_factory=tuple)


# -- parsing -----------------------------------------------------------------


def parse_amount(text: str) -> float:
    """Return the number in an amount string such as ``"60g"``."""
    match = _AMOUNT_RE.search(text)
    if match is None:
        raise InvalidWaterAmount(f"no amount found in {text!r}")
    return float(match.group(0))


def parse_ratio(text: str) -> float:
    """Return the water part of a ``"1:15"`` brew ratio."""
    match = _RATIO_RE.search(text)
    if match is None:
        raise RecipeError(f"ratio must look like '1:15', got {text!r}")
    return float(match.group(1))


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def _stage_from_dict(data: dict[str, Any]) -> Stage:
    pour_time = data.get("pourTime", data.get("pour_time"))
    return Stage(
        label=str(data.get("label", "")),
        target_time=int(data["time"]),
        target_water=str(data["water"]),
        detail=str(data.get("detail", "")),
        pour_time=int(pour_time) if pour_time is not None else None,
    )


def recipe_from_dict(data: dict[str, Any]) -> Recipe:
    """Build a :class:`Recipe` from its JSON form.

    Parameters may live under a ``params`` key or at the top level.
    """
    params = data.get("params", data)
    try:
        stages = tuple(_stage_from_dict(stage) for stage in params.get("stages", []))
    except (KeyError, TypeError, ValueError) as exc:
        raise RecipeError(f"malformed stage: {exc}") from exc
    return Recipe(
        name=str(data.get("name", "")),
        coffee=str(params.get("coffee", "")),
        water=str(params.get("water", "")),
        ratio=str(params.get("ratio", "")),
        stages=stages,
    )


def recipe_to_dict(recipe: Recipe) -> dict[str, Any]:
    stages = []
    for stage in recipe.stages:
        item: dict[str, Any] = {
            "time": stage.target_time,
            "label": stage.label,
            "water": stage.target_water,
            "detail": stage.detail,
        }
        if stage.pour_time is not None:
            item["pourTime"] = stage.pour_time
        stages.append(item)
    return {
        "name": recipe.name,
        "params": {
            "coffee": recipe.coffee,
            "water": recipe.water,
            "ratio": recipe.ratio,
            "stages": stages,
        },
    }


def load_recipe(path: Path) -> Recipe:
    """Read a recipe JSON file."""
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise RecipeError(f"{path}: {exc}") from exc
    recipe = recipe_from_dict(data)
    logger.debug("Loaded recipe %r with %d stages", recipe.name, len(recipe.stages))
    return recipe


# -- rescaling ---------------------------------------------------------------


def _require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def _scale_stages(recipe: Recipe, new_water: float) -> tuple[Stage, ...]:
    """Scale every stage's water by ``new_water / recipe.water``; times are kept."""
    old_water = parse_amount(recipe.water)
    factor = new_water / old_water if old_water else 0.0
    return tuple(
        replace(stage, target_water=f"{round(stage.water_amount * factor)}g")
        for stage in recipe.stages
    )


def with_coffee(recipe: Recipe, grams: float) -> Recipe:
    """Change the dose, keeping the ratio; total and stage water follow."""
    _require_positive("coffee", grams)
    water = round(grams * parse_ratio(recipe.ratio))
    return replace(
        recipe,
        coffee=f"{_format_number(grams)}g",
        water=f"{water}g",
        stages=_scale_stages(recipe, water),
    )


def with_water(recipe: Recipe, grams: float) -> Recipe:
    """Change the total water, keeping the dose; the ratio is recomputed."""
    _require_positive("water", grams)
    ratio = grams / parse_amount(recipe.coffee)
    return replace(
        recipe,
        water=f"{_format_number(grams)}g",
        ratio=f"1:{_format_number(round(ratio, 1))}",
        stages=_scale_stages(recipe, grams),
    )


def with_ratio(recipe: Recipe, ratio: float) -> Recipe:
    """Change the brew ratio, keeping the dose; total and stage water follow."""
    _require_positive("ratio", ratio)
    water = round(parse_amount(recipe.coffee) * ratio)
    return replace(
        recipe,
        water=f"{water}g",
        ratio=f"1:{_format_number(ratio)}",
        stages=_scale_stages(recipe, water),
    )
