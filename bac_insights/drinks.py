"""Alcohol content helpers for logged drinks.

Standard drink = 14 g ethanol.
"""

# Standard drink in grams of pure ethanol.
STANDARD_DRINK_GRAMS = 14.0

# Ethanol density (g/mL) for volume x ABV -> grams.
ETHANOL_DENSITY = 0.789


def grams_from_volume_abv(volume_ml: float, abv_percent: float) -> float:
    """Convert millilitres and ABV (0 to 100) to grams of ethanol."""
    return volume_ml * (abv_percent / 100.0) * ETHANOL_DENSITY


def standard_drinks(volume_ml: float, abv_percent: float) -> float:
    return grams_from_volume_abv(volume_ml, abv_percent) / STANDARD_DRINK_GRAMS
