"""Essential dignity and sign rulership tables."""
from __future__ import annotations

from typing import Dict, Tuple

from models import Sign

DOMICILE = "Domicile"
EXALTATION = "Exaltation"
DETRIMENT = "Detriment"
FALL = "Fall"

TRADITIONAL = "traditional"
MODERN = "modern"
RULERSHIP_SYSTEMS = (TRADITIONAL, MODERN)

DIGNITY_TABLE: Dict[str, Dict[Sign, Tuple[str, ...]]] = {
    "Sun": {
        Sign.LEO: (DOMICILE,),
        Sign.ARIES: (EXALTATION,),
        Sign.AQUARIUS: (DETRIMENT,),
        Sign.LIBRA: (FALL,),
    },
    "Moon": {
        Sign.CANCER: (DOMICILE,),
        Sign.TAURUS: (EXALTATION,),
        Sign.CAPRICORN: (DETRIMENT,),
        Sign.SCORPIO: (FALL,),
    },
    "Mercury": {
        Sign.GEMINI: (DOMICILE,),
        Sign.VIRGO: (DOMICILE, EXALTATION),
        Sign.PISCES: (DETRIMENT, FALL),
        Sign.SAGITTARIUS: (DETRIMENT,),
    },
    "Venus": {
        Sign.TAURUS: (DOMICILE,),
        Sign.LIBRA: (DOMICILE,),
        Sign.PISCES: (EXALTATION,),
        Sign.SCORPIO: (DETRIMENT,),
        Sign.ARIES: (DETRIMENT,),
        Sign.VIRGO: (FALL,),
    },
    "Mars": {
        Sign.ARIES: (DOMICILE,),
        Sign.SCORPIO: (DOMICILE,),
        Sign.CAPRICORN: (EXALTATION,),
        Sign.LIBRA: (DETRIMENT,),
        Sign.TAURUS: (DETRIMENT,),
        Sign.CANCER: (FALL,),
    },
    "Jupiter": {
        Sign.SAGITTARIUS: (DOMICILE,),
        Sign.PISCES: (DOMICILE,),
        Sign.CANCER: (EXALTATION,),
        Sign.GEMINI: (DETRIMENT,),
        Sign.VIRGO: (DETRIMENT,),
        Sign.CAPRICORN: (FALL,),
    },
    "Saturn": {
        Sign.CAPRICORN: (DOMICILE,),
        Sign.AQUARIUS: (DOMICILE,),
        Sign.LIBRA: (EXALTATION,),
        Sign.CANCER: (DETRIMENT,),
        Sign.LEO: (DETRIMENT,),
        Sign.ARIES: (FALL,),
    },
}


def dignities_for(point_name: str, sign: Sign) -> Tuple[str, ...]:
    """Essential dignities of a point in a sign; empty when none apply."""
    return DIGNITY_TABLE.get(point_name, {}).get(sign, ())


def sign_rulers(sign: Sign, system: str = TRADITIONAL) -> Tuple[str, ...]:
    """Ruler(s) of a sign. The modern system adds the outer co-ruler."""
    if system == MODERN and sign.modern_ruler:
        return (sign.ruler, sign.modern_ruler)
    return (sign.ruler,)
