"""Element, modality and polarity balance of a chart."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from models import Element, Modality, Point, Sign, SignDistributions, SignPolarity


def analyze_sign_distributions(
    points: Sequence[Point], ascendant: Optional[float] = None
) -> SignDistributions:
    """Tally points by element (names), modality and polarity (counts).

    When ``ascendant`` is given it is counted as a point named ``Ascendant``.
    Every element, modality and polarity is present in the result, empty or zero
    when unoccupied.
    """
    elements: Dict[str, List[str]] = {element.value: [] for element in Element}
    modalities: Dict[str, int] = {modality.value: 0 for modality in Modality}
    polarities: Dict[str, int] = {polarity.value: 0 for polarity in SignPolarity}

    entries = [(point.name, point.sign) for point in points]
    if ascendant is not None:
        entries.append(("Ascendant", Sign.from_degree(ascendant)))

    for name, sign in entries:
        elements[sign.element.value].append(name)
        modalities[sign.modality.value] += 1
        polarities[sign.polarity.value] += 1

    return SignDistributions(
        elements={k: tuple(v) for k, v in elements.items()},
        modalities=modalities,
        polarities=polarities,
    )
