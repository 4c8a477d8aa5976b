"""Product category detection and default restock cadences."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from restock.normalize import normalize_name


class ProductCategory(str, Enum):
    FRESH_PRODUCE = "fresh-produce"
    DAIRY = "dairy"
    MEAT_FISH = "meat-fish"
    BREAD_BAKERY = "bread-bakery"
    PANTRY_STAPLES = "pantry-staples"
    BEVERAGES = "beverages"
    SNACKS = "snacks"
    LAUNDRY = "laundry"
    CLEANING = "cleaning"
    PAPER_PRODUCTS = "paper-products"
    PERSONAL_HYGIENE = "personal-hygiene"
    BABY_CARE = "baby-care"
    PET_SUPPLIES = "pet-supplies"
    UNKNOWN = "unknown"


# Days between restocks when no learned cadence is available. Household staples last
# longer than perishables.
CATEGORY_CADENCE_DEFAULTS: dict[ProductCategory, int] = {
    ProductCategory.FRESH_PRODUCE: 5,
    ProductCategory.DAIRY: 8,
    ProductCategory.MEAT_FISH: 8,
    ProductCategory.BREAD_BAKERY: 4,
    ProductCategory.PANTRY_STAPLES: 37,
    ProductCategory.BEVERAGES: 17,
    ProductCategory.SNACKS: 17,
    ProductCategory.LAUNDRY: 45,
    ProductCategory.CLEANING: 45,
    ProductCategory.PAPER_PRODUCTS: 37,
    ProductCategory.PERSONAL_HYGIENE: 45,
    ProductCategory.BABY_CARE: 22,
    ProductCategory.PET_SUPPLIES: 25,
    ProductCategory.UNKNOWN: 21,
}

_CATEGORY_KEYWORDS: dict[ProductCategory, tuple[str, ...]] = {
    ProductCategory.BABY_CARE: (
        "bebe", "fralda", "toalhita", "biberao", "baby", "diaper", "wipes", "pampers",
        "dodot",
    ),
    ProductCategory.PET_SUPPLIES: (
        "racao", "comida para", "areia de gato", "pet", "animal", "cao", "gato", "dog",
        "cat", "litter",
    ),
    ProductCategory.BREAD_BAKERY: (
        "pao", "bolo", "croissant", "pastel", "bread", "cake", "pastry",
    ),
    ProductCategory.DAIRY: (
        "leite", "iogurte", "queijo", "manteiga", "nata", "requeijao", "milk", "yogurt",
        "cheese", "butter", "cream",
    ),
    ProductCategory.MEAT_FISH: (
        "carne", "peixe", "frango", "porco", "vaca", "bife", "costeleta", "salmao",
        "bacalhau", "atum", "meat", "fish", "chicken", "beef", "pork",
    ),
    ProductCategory.FRESH_PRODUCE: (
        "fruta", "legume", "vegetal", "hortalica", "banana", "maca", "tomate", "alface",
        "cenoura", "batata", "cebola", "laranja", "pera", "fresh",
    ),
    ProductCategory.LAUNDRY: (
        "detergente", "roupa", "lavar", "amaciador", "lixivia", "skip", "persil", "tide",
        "ariel", "laundry", "softener", "bleach",
    ),
    ProductCategory.PAPER_PRODUCTS: (
        "papel", "guardanapo", "toalha", "lenco", "papel higienico", "papel cozinha",
        "tissue", "toilet paper", "kitchen roll", "napkin",
    ),
    ProductCategory.PERSONAL_HYGIENE: (
        "champo", "gel de banho", "sabonete", "pasta de dentes", "desodorizante",
        "shampoo", "conditioner", "soap", "toothpaste", "deodorant", "colgate", "dove",
        "nivea",
    ),
    ProductCategory.CLEANING: (
        "limpeza", "limpa", "desinfetante", "esfregona", "pano", "lava tudo", "fairy",
        "cleaning", "disinfectant", "cleaner", "mop",
    ),
    ProductCategory.BEVERAGES: (
        "cafe", "cha", "sumo", "agua", "refrigerante", "bebida", "coffee", "tea", "juice",
        "water", "soda", "drink",
    ),
    ProductCategory.SNACKS: (
        "bolachas", "snack", "chocolate", "batatas fritas", "chips", "cookies",
        "biscuits", "candy",
    ),
    ProductCategory.PANTRY_STAPLES: (
        "arroz", "massa", "azeite", "oleo", "farinha", "acucar", "sal", "conserva",
        "enlatado", "rice", "pasta", "oil", "flour", "sugar", "canned", "preserves",
    ),
}


@dataclass(frozen=True)
class CategoryMatch:
    category: ProductCategory
    confidence: float
    matched_keywords: tuple[str, ...]


def _keyword_hits(words: list[str], padded: str, keyword: str) -> bool:
    # Multi-word keywords match as phrases; single words must match a whole word.
    if " " in keyword:
        return f" {keyword} " in padded
    return keyword in words


def detect_category(product_name: str) -> CategoryMatch:
    """
    Classify a product by keyword matching on its normalized name.

    Categories are tried most-specific first; a later category only wins with strictly
    more keyword hits.
    """

    normalized = normalize_name(product_name)
    words = normalized.split()
    padded = f" {normalized} "

    best = ProductCategory.UNKNOWN
    best_hits: tuple[str, ...] = ()
    for category, keywords in _CATEGORY_KEYWORDS.items():
        hits = tuple(kw for kw in keywords if _keyword_hits(words, padded, kw))
        if len(hits) > len(best_hits):
            best, best_hits = category, hits

    if not best_hits:
        confidence = 0.1
    elif len(best_hits) == 1:
        confidence = 0.6
    elif len(best_hits) == 2:
        confidence = 0.75
    else:
        confidence = 0.9
    return CategoryMatch(category=best, confidence=confidence, matched_keywords=best_hits)


def default_cadence(category: ProductCategory) -> int:
    return CATEGORY_CADENCE_DEFAULTS[category]


__all__ = [
    "ProductCategory",
    "CATEGORY_CADENCE_DEFAULTS",
    "CategoryMatch",
    "detect_category",
    "default_cadence",
]
