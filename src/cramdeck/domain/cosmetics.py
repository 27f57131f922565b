"""Static table of brain cosmetics that can be bought with gold."""

from dataclasses import dataclass
from enum import Enum


class CosmeticType(str, Enum):
    COLOR = "color"
    PATTERN = "pattern"
    ACCESSORY = "accessory"
    PET = "pet"


@dataclass(frozen=True)
class Cosmetic:
    id: str
    name: str
    type: CosmeticType
    cost: int
    description: str
    color: str | None = None


COSMETICS: list[Cosmetic] = [
    # Colors
    Cosmetic("color-orange", "Classic Orange", CosmeticType.COLOR, 0, "The original brain color", "#FF8A3D"),
    Cosmetic("color-blue", "Ocean Blue", CosmeticType.COLOR, 100, "Cool and calming", "#4587FF"),
    Cosmetic("color-pink", "Bubblegum Pink", CosmeticType.COLOR, 150, "Sweet and powerful", "#FF347A"),
    Cosmetic("color-yellow", "Sunny Yellow", CosmeticType.COLOR, 200, "Bright and energetic", "#FFD700"),
    # Accessories
    Cosmetic("accessory-none", "No Accessory", CosmeticType.ACCESSORY, 0, "Go accessory-free"),
    Cosmetic("accessory-3d-glasses", "3D Glasses", CosmeticType.ACCESSORY, 250, "See learning in 3D"),
    Cosmetic("accessory-blue-glasses", "Blue Funky Glasses", CosmeticType.ACCESSORY, 300, "Cool blue shades"),
    Cosmetic("accessory-cool-glasses", "Cool Glasses", CosmeticType.ACCESSORY, 350, "Too cool for school"),
    Cosmetic("accessory-flame-glasses", "Flame Glasses", CosmeticType.ACCESSORY, 400, "Hot knowledge"),
    Cosmetic("accessory-heart-glasses", "Heart Glasses", CosmeticType.ACCESSORY, 300, "Love learning"),
    Cosmetic("accessory-monocle", "Monocle", CosmeticType.ACCESSORY, 500, "Distinguished scholar"),
    Cosmetic("accessory-nerdy-glasses", "Nerdy Glasses", CosmeticType.ACCESSORY, 200, "Classic nerd look"),
    Cosmetic("accessory-retro-glasses", "Retro Glasses", CosmeticType.ACCESSORY, 350, "Vintage vibes"),
    Cosmetic("accessory-snowboard-glasses", "Snowboard Goggles", CosmeticType.ACCESSORY, 400, "Extreme learning"),
    Cosmetic("accessory-star-glasses", "Star Glasses", CosmeticType.ACCESSORY, 450, "Superstar student"),
    # Pets
    Cosmetic("pet-none", "No Pet", CosmeticType.PET, 0, "No companion"),
    Cosmetic("pet-bacteria", "Bacteria Buddy", CosmeticType.PET, 1000, "A friendly microbe companion"),
    Cosmetic("pet-capsule", "Capsule Pal", CosmeticType.PET, 1000, "Your medicinal friend"),
    Cosmetic("pet-covid", "Covid Cutie", CosmeticType.PET, 1000, "The viral sensation"),
    Cosmetic("pet-droplet", "Droplet Buddy", CosmeticType.PET, 1000, "Liquid learning companion"),
    Cosmetic("pet-flask", "Flask Friend", CosmeticType.PET, 1000, "Lab equipment come to life"),
]

_BY_ID = {c.id: c for c in COSMETICS}


def find_cosmetic(cosmetic_id: str) -> Cosmetic | None:
    return _BY_ID.get(cosmetic_id)
