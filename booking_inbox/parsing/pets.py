"""
Pet and owner details pulled from message text.

Everything here is best effort: a miss returns None or an empty list and
the caller carries on.
"""

import re
from dataclasses import dataclass

_NAME = r"[A-ZÁÉÍÓÚÑ][a-záéíóúñ]{2,}"

_MOM_RX = re.compile(r"\b(" + _NAME + r")'s\s+(?:mom|dad|mommy|daddy)\b")
_DROP_RX = re.compile(r"\b(?:drop|dejar)\s+(" + _NAME + r")\s+off\b")
_FOR_RX = re.compile(
    r"\b(?:for|para)\s+(?:(?:my|mi)\s+)?(?:(?:dog|pup|puppy|perro|perrita|perrito)\s+)?(" + _NAME + r")\b"
)
# words that follow "for" in ordinary sentences and are not names
_NOT_NAMES = {
    "The", "This", "That", "Thanksgiving", "Christmas", "Navidad", "Monday",
    "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April", "June", "July", "August",
    "September", "October", "November", "December", "Rover", "Dog", "Perro",
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Sept",
    "Oct", "Nov", "Dec", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun",
    "Halloween", "Labor", "Memorial", "New",
}

_OWNER_RX = re.compile(r"\bfrom\s+([A-Z][a-z]+):")
_FULL_OWNER_RX = re.compile(r"\bfrom\s+[A-Z][a-z]+:\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)+)")
_PROFILE_PET_RX = re.compile(r"\b([A-Z][a-z]+)\s*\((?:\d+\s*(?:mos?|months?)|[\d.]+\s*lbs?)")
_AGE_RX = re.compile(r"\((\d+)\s*(?:mos?|months?)\b", re.IGNORECASE)
_WEIGHT_RX = re.compile(r"(\d+(?:\.\d+)?)\s*lbs?\b", re.IGNORECASE)

_COUNT_WORDS = {
    "two": 2, "three": 3, "four": 4, "five": 5,
    "dos": 2, "tres": 3, "cuatro": 4, "cinco": 5,
}
_DOGS_RX = re.compile(
    r"\b(\d{1,2}|" + "|".join(_COUNT_WORDS) + r")\s+(?:small\s+|big\s+|little\s+)?"
    r"(?:dogs|pups|puppies|perros|perritos|perritas)\b",
    re.IGNORECASE,
)


@dataclass
class RoverMeta:
    """Details from a forwarded Rover notification."""
    owner_name: str | None = None
    pet_name: str | None = None
    pet_age_months: int | None = None
    pet_weight_lbs: float | None = None


def extract_pet_names(text: str | None) -> list[str]:
    """
    Names from "Vida's mom", "drop Vida off", "for my dog Luna",
    "para mi perro Luna"; first-seen order, no duplicates.
    """
    if not text:
        return []
    text = text.replace("’", "'")
    names: list[str] = []
    for rx in (_MOM_RX, _DROP_RX, _FOR_RX):
        m = rx.search(text)
        if m and m.group(1) not in _NOT_NAMES and m.group(1) not in names:
            names.append(m.group(1))
    return names


def extract_rover_meta(text: str | None) -> RoverMeta:
    """
    Parse "New booking request (dog boarding) from Eric: Eric Roberts
    (2 mos, 5 lbs)" style notifications.
    """
    if not text:
        return RoverMeta()
    full_owner = _FULL_OWNER_RX.search(text)
    owner = _OWNER_RX.search(text)
    pet = _PROFILE_PET_RX.search(text)
    pet_name = pet.group(1) if pet else None
    if pet_name is None:
        fallback = extract_pet_names(text)
        pet_name = fallback[0] if fallback else None
    age = _AGE_RX.search(text)
    weight = _WEIGHT_RX.search(text)
    return RoverMeta(
        owner_name=full_owner.group(1) if full_owner else (owner.group(1) if owner else None),
        pet_name=pet_name,
        pet_age_months=int(age.group(1)) if age else None,
        pet_weight_lbs=float(weight.group(1)) if weight else None,
    )


def extract_dogs_count(text: str | None, default: int = 1) -> int:
    """"2 dogs", "my two pups", "3 perros"; *default* when nothing matches."""
    if not text:
        return default
    m = _DOGS_RX.search(text)
    if not m:
        return default
    raw = m.group(1).lower()
    count = int(raw) if raw.isdigit() else _COUNT_WORDS[raw]
    return count if count >= 1 else default
