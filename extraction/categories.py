"""
extraction.categories — Closed enumerations for payment method and
spending category, plus the keyword classifier for categories.

Every mapping here is total: unknown inputs land on ``OTHER``.

Category classification scores each category as::

    0.5 * merchant_score + 0.3 * item_score + 0.2 * context_score

where each sub-score is the fraction of that category's keywords found
in the merchant name, the item names and the full text respectively.
The highest score wins; ``OTHER`` when nothing matches.
"""

from __future__ import annotations

import enum
from typing import Dict, Iterable, Sequence, Tuple


class PaymentMethod(enum.Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    GIFT_CARD = "gift_card"
    MOBILE_PAYMENT = "mobile_payment"
    CHECK = "check"
    OTHER = "other"


_PAYMENT_BY_LABEL: Dict[str, PaymentMethod] = {
    "cash": PaymentMethod.CASH,
    "credit": PaymentMethod.CREDIT_CARD,
    "debit": PaymentMethod.DEBIT_CARD,
    "gift": PaymentMethod.GIFT_CARD,
    "mobile": PaymentMethod.MOBILE_PAYMENT,
    "check": PaymentMethod.CHECK,
}


def payment_method_from_label(label: str) -> PaymentMethod:
    return _PAYMENT_BY_LABEL.get(label.strip().lower(), PaymentMethod.OTHER)


class ReceiptCategory(enum.Enum):
    GROCERIES = "Groceries"
    DINING = "Dining"
    TRANSPORTATION = "Transportation"
    ELECTRONICS = "Electronics"
    CLOTHING = "Clothing"
    HEALTHCARE = "Healthcare"
    ENTERTAINMENT = "Entertainment"
    HOME_GARDEN = "Home & Garden"
    AUTOMOTIVE = "Automotive"
    BUSINESS = "Business"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    UTILITIES = "Utilities"
    OTHER = "Other"

    @property
    def display_name(self) -> str:
        return self.value


# Caller-facing grouping used by expense views
_DISPLAY_GROUPS: Dict[ReceiptCategory, str] = {
    ReceiptCategory.GROCERIES: "Food & Dining",
    ReceiptCategory.DINING: "Food & Dining",
    ReceiptCategory.TRANSPORTATION: "Transportation",
    ReceiptCategory.AUTOMOTIVE: "Transportation",
    ReceiptCategory.CLOTHING: "Shopping",
    ReceiptCategory.ELECTRONICS: "Electronics",
    ReceiptCategory.HEALTHCARE: "Healthcare",
    ReceiptCategory.ENTERTAINMENT: "Entertainment",
    ReceiptCategory.HOME_GARDEN: "Home & Garden",
    ReceiptCategory.UTILITIES: "Utilities",
    ReceiptCategory.BUSINESS: "Business",
    ReceiptCategory.TRAVEL: "Travel",
    ReceiptCategory.EDUCATION: "Education",
    ReceiptCategory.OTHER: "Other",
}


def display_category(category: ReceiptCategory) -> str:
    return _DISPLAY_GROUPS.get(category, "Other")


# -----------------------------
# Keyword tables
# -----------------------------

_MERCHANT_WORDS: Dict[ReceiptCategory, Tuple[str, ...]] = {
    ReceiptCategory.GROCERIES: (
        "walmart", "target", "kroger", "safeway", "whole foods", "trader joe",
        "costco", "sam's club", "publix", "wegmans", "food lion", "giant",
        "supermarket", "grocery", "market", "food", "fresh", "organic",
    ),
    ReceiptCategory.DINING: (
        "mcdonald", "burger king", "subway", "starbucks", "dunkin", "kfc",
        "pizza hut", "domino", "taco bell", "chipotle", "panera", "chick-fil-a",
        "restaurant", "cafe", "bistro", "diner", "bar", "grill", "kitchen",
        "food truck", "bakery", "coffee", "pizza", "sushi", "mexican", "chinese",
    ),
    ReceiptCategory.TRANSPORTATION: (
        "shell", "exxon", "bp", "chevron", "mobil", "citgo", "sunoco",
        "uber", "lyft", "taxi", "bus", "metro", "train", "airline",
        "gas station", "fuel", "parking", "toll", "transit",
    ),
    ReceiptCategory.ELECTRONICS: (
        "best buy", "apple", "samsung", "microsoft", "amazon", "newegg",
        "micro center", "gamestop", "electronic", "computer", "phone",
        "tablet", "laptop", "tv", "camera", "headphones",
    ),
    ReceiptCategory.CLOTHING: (
        "nike", "adidas", "gap", "h&m", "zara", "forever 21", "old navy",
        "macy's", "nordstrom", "jcpenney", "kohl's", "clothing", "fashion",
        "shoes", "apparel", "dress", "shirt", "pants", "jacket", "accessories",
    ),
    ReceiptCategory.HEALTHCARE: (
        "cvs", "walgreens", "rite aid", "pharmacy", "hospital", "clinic",
        "doctor", "dental", "medical", "health", "prescription", "medicine",
        "urgent care", "optometry", "physical therapy",
    ),
    ReceiptCategory.ENTERTAINMENT: (
        "amc", "regal", "cinemark", "netflix", "spotify", "steam", "xbox",
        "playstation", "nintendo", "movie", "theater", "cinema", "concert",
        "game", "entertainment", "music", "streaming", "subscription",
    ),
    ReceiptCategory.HOME_GARDEN: (
        "home depot", "lowe's", "ikea", "bed bath", "williams sonoma",
        "wayfair", "home goods", "furniture", "garden", "hardware",
        "appliance", "decor", "bathroom", "bedroom", "living room",
    ),
    ReceiptCategory.AUTOMOTIVE: (
        "autozone", "advance auto", "napa", "jiffy lube", "valvoline",
        "car wash", "mechanic", "auto", "vehicle", "truck", "motorcycle",
        "oil change", "tire", "brake", "repair", "maintenance",
    ),
    ReceiptCategory.BUSINESS: (
        "office depot", "staples", "fedex", "ups", "post office", "bank",
        "office", "business", "professional", "supplies", "shipping",
        "printing", "conference", "meeting", "workspace",
    ),
    ReceiptCategory.TRAVEL: (
        "hotel", "motel", "airbnb", "booking", "expedia", "travel",
        "vacation", "trip", "flight", "accommodation", "resort",
        "car rental", "hertz", "enterprise", "budget", "avis",
    ),
    ReceiptCategory.EDUCATION: (
        "university", "college", "school", "bookstore", "library",
        "education", "tuition", "textbook", "course", "training",
        "certification", "workshop", "seminar", "academic",
    ),
    ReceiptCategory.UTILITIES: (
        "electric", "gas", "water", "internet", "cable", "utility",
        "bill", "service", "provider", "telecom", "energy",
    ),
}

_ITEM_WORDS: Dict[ReceiptCategory, Tuple[str, ...]] = {
    ReceiptCategory.GROCERIES: (
        "milk", "bread", "eggs", "cheese", "meat", "chicken", "beef",
        "vegetables", "fruits", "cereal", "pasta", "rice", "flour",
        "sugar", "salt", "butter", "yogurt", "juice", "snacks", "cookies",
        "chips", "candy", "frozen", "canned", "banana", "apple",
    ),
    ReceiptCategory.DINING: (
        "burger", "pizza", "sandwich", "salad", "soup", "coffee", "tea",
        "soda", "beer", "wine", "appetizer", "entree", "dessert",
        "breakfast", "lunch", "dinner", "meal", "combo", "fries", "latte",
    ),
    ReceiptCategory.TRANSPORTATION: (
        "gasoline", "diesel", "fuel", "unleaded", "parking", "toll",
        "fare", "ride", "trip", "mileage",
    ),
    ReceiptCategory.ELECTRONICS: (
        "iphone", "android", "laptop", "desktop", "tablet", "tv",
        "monitor", "keyboard", "mouse", "headphones", "speakers",
        "camera", "charger", "cable", "software",
    ),
    ReceiptCategory.CLOTHING: (
        "shirt", "pants", "dress", "shoes", "jacket", "coat", "hat",
        "socks", "underwear", "belt", "purse", "jewelry", "sunglasses",
        "scarf", "gloves", "shorts", "skirt", "jeans",
    ),
    ReceiptCategory.HEALTHCARE: (
        "prescription", "medicine", "vitamins", "supplements", "bandages",
        "first aid", "thermometer", "consultation", "examination",
        "treatment", "therapy", "ibuprofen", "tylenol",
    ),
    ReceiptCategory.ENTERTAINMENT: (
        "movie", "ticket", "popcorn", "game", "subscription", "streaming",
        "music", "concert", "show", "event", "book", "magazine",
    ),
    ReceiptCategory.HOME_GARDEN: (
        "furniture", "table", "chair", "sofa", "lamp", "mirror",
        "curtains", "carpet", "paint", "tools", "hammer", "screwdriver",
        "plants", "seeds", "fertilizer", "garden", "lawn",
    ),
    ReceiptCategory.AUTOMOTIVE: (
        "oil change", "tire", "brake", "filter", "spark plug", "coolant",
        "transmission", "engine", "wax", "polish", "air freshener",
    ),
    ReceiptCategory.BUSINESS: (
        "paper", "pen", "pencil", "folder", "binder", "printer", "ink",
        "toner", "envelope", "stamp", "shipping", "supplies",
    ),
    ReceiptCategory.TRAVEL: (
        "hotel", "room", "flight", "luggage", "suitcase", "tour",
        "guide", "map", "souvenir", "night", "resort fee",
    ),
    ReceiptCategory.EDUCATION: (
        "textbook", "notebook", "calculator", "backpack", "tuition",
        "course", "class", "workshop", "seminar", "training",
    ),
    ReceiptCategory.UTILITIES: (
        "electricity", "gas", "water", "internet", "phone", "cable",
        "monthly", "usage", "connection", "kwh",
    ),
}

_CONTEXT_WORDS: Dict[ReceiptCategory, Tuple[str, ...]] = {
    ReceiptCategory.GROCERIES: (
        "grocery", "supermarket", "fresh", "organic", "produce", "deli",
        "bakery", "dairy", "frozen", "canned goods", "checkout",
    ),
    ReceiptCategory.DINING: (
        "restaurant", "cafe", "dine in", "take out", "delivery", "tip",
        "server", "table", "order", "menu", "kitchen", "chef",
    ),
    ReceiptCategory.TRANSPORTATION: (
        "station", "pump", "gallon", "liter", "mileage", "vehicle",
        "license", "registration", "inspection", "emissions",
    ),
    ReceiptCategory.ELECTRONICS: (
        "warranty", "tech support", "installation", "upgrade", "software",
        "hardware", "digital", "wireless", "bluetooth", "wifi",
    ),
    ReceiptCategory.CLOTHING: (
        "size", "color", "fashion", "style", "brand", "designer",
        "season", "collection", "fitting", "alteration",
    ),
    ReceiptCategory.HEALTHCARE: (
        "health", "medical", "doctor", "nurse", "patient", "treatment",
        "diagnosis", "medication", "dosage", "prescription", "rx",
    ),
    ReceiptCategory.ENTERTAINMENT: (
        "entertainment", "fun", "leisure", "hobby", "recreation",
        "performance", "show", "event", "ticket", "admission",
    ),
    ReceiptCategory.HOME_GARDEN: (
        "home improvement", "renovation", "decoration", "interior",
        "exterior", "landscape", "gardening", "lawn care",
    ),
    ReceiptCategory.AUTOMOTIVE: (
        "automotive", "vehicle", "car care", "maintenance", "repair",
        "mechanic", "garage", "dealership", "parts",
    ),
    ReceiptCategory.BUSINESS: (
        "business", "office", "professional", "corporate", "company",
        "organization", "meeting", "conference", "presentation",
    ),
    ReceiptCategory.TRAVEL: (
        "travel", "vacation", "trip", "journey", "destination",
        "booking", "reservation", "check-in", "check-out", "luggage",
    ),
    ReceiptCategory.EDUCATION: (
        "education", "learning", "study", "academic", "school",
        "university", "college", "course", "degree", "certification",
    ),
    ReceiptCategory.UTILITIES: (
        "utility", "monthly", "bill", "account", "usage", "meter",
        "connection", "provider",
    ),
}


def _fraction(text: str, words: Sequence[str]) -> float:
    if not words:
        return 0.0
    return sum(1 for w in words if w in text) / len(words)


def _item_fraction(items: Sequence[str], words: Sequence[str]) -> float:
    if not items or not words:
        return 0.0
    hits = sum(1 for item in items for w in words if w in item)
    return hits / (len(items) * len(words))


def category_scores(
    merchant: str, items: Iterable[str], full_text: str,
) -> Dict[ReceiptCategory, float]:
    merchant = (merchant or "").lower()
    items = [i.lower() for i in items]
    full_text = (full_text or "").lower()
    scores: Dict[ReceiptCategory, float] = {}
    for category in ReceiptCategory:
        if category is ReceiptCategory.OTHER:
            continue
        score = (
            0.5 * _fraction(merchant, _MERCHANT_WORDS.get(category, ()))
            + 0.3 * _item_fraction(items, _ITEM_WORDS.get(category, ()))
            + 0.2 * _fraction(full_text, _CONTEXT_WORDS.get(category, ()))
        )
        scores[category] = min(1.0, score)
    return scores


def classify_category(
    merchant: str, items: Iterable[str], full_text: str,
) -> Tuple[ReceiptCategory, float]:
    """Return the best category and its score; ``OTHER`` with 0.0 if nothing matched."""
    best, best_score = ReceiptCategory.OTHER, 0.0
    for category, score in category_scores(merchant, items, full_text).items():
        if score > best_score:
            best, best_score = category, score
    return best, best_score
