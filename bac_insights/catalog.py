"""
Drink presets: common servings with volume, ABV and category.
Values are typical pours; real drinks vary by bar and brand.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from bac_insights.drinks import standard_drinks
from bac_insights.models import DrinkCategory, DrinkEntry


class PresetGroup(str, Enum):
    BEER = "beer"
    WINE = "wine"
    SPIRITS = "spirits"
    COCKTAILS = "cocktails"
    LIGHT = "light"

    @property
    def title(self) -> str:
        return {
            PresetGroup.BEER: "Beer and ale",
            PresetGroup.WINE: "Wine",
            PresetGroup.SPIRITS: "Spirits",
            PresetGroup.COCKTAILS: "Cocktails",
            PresetGroup.LIGHT: "Light drinks",
        }[self]


@dataclass(frozen=True)
class DrinkPreset:
    id: str
    title: str
    subtitle: str
    category: DrinkCategory
    volume_ml: float
    abv: float  # percent, e.g. 5.0
    group: PresetGroup


def _p(pid: str, title: str, subtitle: str, category: DrinkCategory, ml: float, abv: float, group: PresetGroup) -> DrinkPreset:
    return DrinkPreset(id=pid, title=title, subtitle=subtitle, category=category, volume_ml=ml, abv=abv, group=group)


_B, _W, _S, _C = DrinkCategory.BEER, DrinkCategory.WINE, DrinkCategory.SPIRITS, DrinkCategory.COCKTAIL

PRESETS: List[DrinkPreset] = [
    # Beer
    _p("lager-500-5", "Lager", "Pale beer", _B, 500, 5.0, PresetGroup.BEER),
    _p("pilsner-500-48", "Pilsner", "Pale beer", _B, 500, 4.8, PresetGroup.BEER),
    _p("ipa-500-65", "IPA", "Hoppy ale", _B, 500, 6.5, PresetGroup.BEER),
    _p("wheat-500-52", "Wheat beer", "Beer", _B, 500, 5.2, PresetGroup.BEER),
    _p("stout-440-6", "Stout", "Dark beer", _B, 440, 6.0, PresetGroup.BEER),
    _p("craft-can-330-7", "Craft beer", "Can", _B, 330, 7.0, PresetGroup.BEER),
    # Wine
    _p("red-wine-150-13", "Red wine", "Glass", _W, 150, 13.0, PresetGroup.WINE),
    _p("white-wine-150-12", "White wine", "Glass", _W, 150, 12.0, PresetGroup.WINE),
    _p("rose-wine-150-115", "Rosé", "Glass", _W, 150, 11.5, PresetGroup.WINE),
    _p("sparkling-150-12", "Sparkling", "Glass", _W, 150, 12.0, PresetGroup.WINE),
    _p("fortified-90-18", "Fortified wine", "Small glass", _W, 90, 18.0, PresetGroup.WINE),
    # Spirits (50 ml shot)
    _p("vodka-50-40", "Vodka", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    _p("whiskey-50-40", "Whiskey", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    _p("bourbon-50-40", "Bourbon", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    _p("tequila-50-38", "Tequila", "Shot", _S, 50, 38.0, PresetGroup.SPIRITS),
    _p("rum-50-40", "Rum", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    _p("gin-50-40", "Gin", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    _p("brandy-50-40", "Brandy", "Shot", _S, 50, 40.0, PresetGroup.SPIRITS),
    # Cocktails
    _p("aperol-300-11", "Aperol Spritz", "Cocktail", _C, 300, 11.0, PresetGroup.COCKTAILS),
    _p("mojito-300-10", "Mojito", "Cocktail", _C, 300, 10.0, PresetGroup.COCKTAILS),
    _p("gin-tonic-250-10", "Gin Tonic", "Cocktail", _C, 250, 10.0, PresetGroup.COCKTAILS),
    _p("cuba-libre-250-12", "Cuba Libre", "Cocktail", _C, 250, 12.0, PresetGroup.COCKTAILS),
    _p("margarita-180-20", "Margarita", "Cocktail", _C, 180, 20.0, PresetGroup.COCKTAILS),
    _p("daiquiri-140-22", "Daiquiri", "Cocktail", _C, 140, 22.0, PresetGroup.COCKTAILS),
    _p("negroni-90-24", "Negroni", "Strong cocktail", _C, 90, 24.0, PresetGroup.COCKTAILS),
    _p("old-fashioned-120-28", "Old Fashioned", "Strong cocktail", _C, 120, 28.0, PresetGroup.COCKTAILS),
    _p("long-island-220-22", "Long Island", "Strong cocktail", _C, 220, 22.0, PresetGroup.COCKTAILS),
    _p("espresso-martini-160-18", "Espresso Martini", "Cocktail", _C, 160, 18.0, PresetGroup.COCKTAILS),
    # Light
    _p("cider-500-45", "Cider", "Bottle", DrinkCategory.CIDER, 500, 4.5, PresetGroup.LIGHT),
    _p("dry-cider-500-6", "Dry cider", "Bottle", DrinkCategory.CIDER, 500, 6.0, PresetGroup.LIGHT),
    _p("seltzer-330-45", "Hard Seltzer", "Can", DrinkCategory.SELTZER, 330, 4.5, PresetGroup.LIGHT),
    _p("seltzer-500-55", "Hard Seltzer Strong", "Can", DrinkCategory.SELTZER, 500, 5.5, PresetGroup.LIGHT),
    _p("liqueur-60-25", "Liqueur", "Shot", DrinkCategory.LIQUEUR, 60, 25.0, PresetGroup.LIGHT),
    _p("amaro-60-28", "Amaro", "Digestif", DrinkCategory.LIQUEUR, 60, 28.0, PresetGroup.LIGHT),
    _p("vermouth-90-16", "Vermouth", "Aperitif", DrinkCategory.OTHER, 90, 16.0, PresetGroup.LIGHT),
]

_PRESETS_BY_ID: Dict[str, DrinkPreset] = {p.id: p for p in PRESETS}


def get_preset(preset_id: str) -> Optional[DrinkPreset]:
    return _PRESETS_BY_ID.get(preset_id)


def drink_from_preset(preset_id: str, created_at: Optional[datetime] = None) -> Optional[DrinkEntry]:
    """A DrinkEntry for one serving of the preset, or None for an unknown id."""
    p = get_preset(preset_id)
    if p is None:
        return None
    return DrinkEntry(
        created_at=created_at or datetime.now(),
        volume_ml=p.volume_ml,
        abv_percent=p.abv,
        category=p.category,
        title=p.title,
    )


def list_by_group() -> Dict[str, List[dict]]:
    """Presets grouped for UI, groups in display order, empty groups left out."""
    out: Dict[str, List[dict]] = {}
    for group in PresetGroup:
        entries = [p for p in PRESETS if p.group == group]
        if not entries:
            continue
        out[group.value] = [
            {
                "id": p.id,
                "title": p.title,
                "subtitle": p.subtitle,
                "category": p.category.value,
                "volume_ml": p.volume_ml,
                "abv": p.abv,
                "standard_drinks": round(standard_drinks(p.volume_ml, p.abv), 2),
            }
            for p in entries
        ]
    return out
