"""
Keyword category assignment for grocery deals.

Matching is plain substring on a lowercased search string built from the
title plus any category hints.  The table below is ORDERED: when two
categories match, the earlier one wins, so ``"Frozen Chicken Breast"`` is
meat, not frozen, and ``"Popcorn"`` is produce (``"corn"``).

The keyword lists were curated against real ad titles and are treated as
configuration data.  Ham is listed as " ham " so "shampoo" stays personal
care; the search string is space-padded so a title that starts or ends
with "Ham" still matches.  Other collisions ("roll" inside "12-roll") are
left alone; the frontend's category filter was tuned against them.
"""

from __future__ import annotations

FALLBACK_CATEGORY = "other"

# Order matters.  First category with any keyword hit wins.
CATEGORY_KEYWORDS: list[tuple[str, list[str]]] = [
    ("produce", [
        "fruit", "vegetable", "organic produce", "berries", "avocado", "lettuce",
        "salad", "apple", "banana", "grape", "tomato", "pepper", "onion", "potato",
        "mushroom", "broccoli", "spinach", "kale", "mango", "melon", "watermelon",
        "pineapple", "strawberr", "blueberr", "raspberr", "citrus", "lemon", "lime",
        "orange", "peach", "pear", "cherry", "corn", "celery", "carrot", "cucumber",
        "zucchini", "squash", "asparagus",
    ]),
    ("meat", [
        "beef", "chicken", "pork", "salmon", "shrimp", "steak", "seafood", "fish",
        "turkey", "lamb", "crab", "lobster", "tuna", "tilapia", "sausage", "bacon",
        " ham ", "hamburger", "ribs", "brisket", "ground beef", "ribeye", "sirloin", "tenderloin",
        "filet", "meatball", "hot dog", "deli meat",
    ]),
    ("dairy", [
        "milk", "cheese", "yogurt", "butter", "cream", "egg", "sour cream",
        "cottage", "mozzarella", "cheddar", "parmesan", "creamer", "half and half",
    ]),
    ("bakery", [
        "bread", "croissant", "muffin", "cake", "bagel", "cookie", "brownie",
        "donut", "pastry", "roll", "baguette", "tortilla", "pita", "pie", "cupcake",
    ]),
    ("snacks", [
        "chips", "crackers", "nuts", "almond", "snack", "granola", "popcorn",
        "pretzel", "trail mix", "cashew", "pistachio", "walnut", "peanut", "candy",
        "chocolate", "gummy", "protein bar", "energy bar",
    ]),
    ("beverages", [
        "water", "coffee", "tea", "juice", "soda", "drink", "wine", "beer",
        "kombucha", "sparkling", "lemonade", "smoothie", "espresso", "cold brew",
        "energy drink", "gatorade", "mineral water", "coconut water",
    ]),
    ("frozen", [
        "frozen", "ice cream", "pizza", "popsicle", "gelato", "sorbet",
        "frozen meal", "frozen vegetable", "frozen fruit",
    ]),
    ("pantry", [
        "rice", "pasta", "sauce", "oil", "flour", "sugar", "cereal", "soup",
        "canned", "olive oil", "vinegar", "spice", "seasoning", "honey", "jam",
        "peanut butter", "maple syrup", "ketchup", "mustard", "mayo", "noodle",
        "broth",
    ]),
    ("household", [
        "paper towel", "detergent", "trash bag", "tissue", "cleaning", "battery",
        "towel", "napkin", "aluminum foil", "plastic wrap", "sponge", "dish soap",
        "laundry", "air freshener", "light bulb", "candle", "storage", "container",
        "ziplock", "glad",
    ]),
    ("personal", [
        "shampoo", "toothpaste", "soap", "lotion", "moisturizer", "sunscreen",
        "deodorant", "razor", "dental", "floss", "body wash", "conditioner", "hair",
        "skin care", "makeup", "cosmetic", "face wash", "perfume", "cologne",
    ]),
    ("electronics", [
        "tv", "television", "laptop", "computer", "tablet", "ipad", "phone",
        "iphone", "samsung", "airpod", "headphone", "speaker", "bluetooth", "usb",
        "charger", "cable", "monitor", "printer", "camera", "gopro", "drone",
        "smart watch", "fitbit", "garmin", "router", "wifi", "hard drive", "ssd",
        "flash drive", "keyboard", "mouse", "gaming", "playstation", "xbox",
        "nintendo", "ring doorbell", "nest", "sonos", "roku", "apple watch",
        "macbook",
    ]),
    ("clothing", [
        "shirt", "pants", "jacket", "coat", "dress", "shorts", "sock", "underwear",
        "jeans", "sweater", "hoodie", "polo", "shoe", "sneaker", "boot", "sandal",
        "slipper", "backpack", "luggage", "suitcase", "handbag", "wallet", "belt",
        "hat", "cap", "glove", "scarf", "legging", "activewear", "athletic wear",
        "puma", "adidas", "nike", "kirkland signature boxer",
    ]),
    ("health", [
        "vitamin", "supplement", "medicine", "allergy", "tylenol", "advil",
        "ibuprofen", "acetaminophen", "probiotic", "melatonin", "fish oil", "omega",
        "calcium", "magnesium", "zinc", "multivitamin", "first aid", "bandage",
        "thermometer", "blood pressure", "glucosamine", "collagen", "turmeric",
        "elderberry", "emergen-c", "flonase", "claritin", "zyrtec", "pharmacy",
    ]),
    ("baby", [
        "baby", "diaper", "wipe", "formula", "infant", "toddler", "stroller",
        "car seat", "pacifier", "bottle", "sippy cup", "huggies", "pampers", "kids",
    ]),
    ("pet", [
        "dog food", "cat food", "pet food", "dog treat", "cat treat", "cat litter",
        "pet bed", "dog toy", "cat toy", "pet shampoo", "flea", "tick", "kibble",
        "purina", "pedigree", "blue buffalo", "iams",
    ]),
    ("outdoor", [
        "tent", "camping", "hiking", "bicycle", "bike", "kayak", "fishing", "grill",
        "bbq", "patio", "lawn", "garden", "mower", "hose", "sprinkler",
        "outdoor furniture", "cooler", "sleeping bag", "golf", "yoga mat",
        "dumbbell", "weight", "treadmill", "exercise", "fitness", "basketball",
        "football", "soccer", "baseball", "trampoline", "pool", "swim",
    ]),
    ("auto", [
        "motor oil", "tire", "wiper", "car wash", "car cover", "floor mat",
        "jump starter", "dash cam", "car charger", "gas can", "garage", "tool set",
        "drill", "wrench", "socket", "craftsman", "dewalt", "milwaukee",
        "power tool",
    ]),
    ("office", [
        "printer paper", "ink", "toner", "pen", "pencil", "notebook", "binder",
        "folder", "stapler", "tape", "scissors", "desk", "chair", "shredder",
        "laminator", "calculator", "planner", "calendar", "envelope", "label",
    ]),
]


def assign_category(text: str, hints: list[str] | None = None) -> str:
    """Return the category id for *text* (plus optional *hints*).

    >>> assign_category("Fresh Organic Strawberries")
    'produce'
    >>> assign_category("Special Gift Set", ["lotion"])
    'personal'
    >>> assign_category("Mystery Box Special Deal")
    'other'
    """
    # Padded so space-delimited keywords match at either end.
    search = " " + " ".join([text or "", *(hints or [])]).lower() + " "
    for category_id, keywords in CATEGORY_KEYWORDS:
        if any(kw in search for kw in keywords):
            return category_id
    return FALLBACK_CATEGORY
