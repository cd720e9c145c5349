"""
Auto-tagger — keyword and pattern matching over titles/descriptions, plus
the pizza topical-relevance filter used by the normalizers.

Keyword hits become tags as-is (spaces → dashes); patterns map a regex to a
fixed tag. Checked in list order so output order is stable.
"""
import re

# Words that make an item count as pizza content
TOPIC_KEYWORDS = (
    "pizza", "pizzeria", "slice", "pepperoni", "margherita", "cheese", "dough", "pie",
)

TAG_KEYWORDS = (
    # styles
    "pepperoni", "margherita", "hawaiian", "supreme", "veggie", "meat lovers",
    "deep dish", "thin crust", "stuffed crust", "new york", "chicago",
    "neapolitan", "sicilian", "detroit", "california", "greek", "flatbread",
    # toppings
    "cheese", "mushroom", "olive", "onion", "pepper", "sausage", "bacon", "ham",
    "pineapple", "anchovy", "jalapeno", "spinach", "tomato", "basil",
    "garlic", "mozzarella", "parmesan", "ricotta", "feta",
    # pizza things
    "slice", "crust", "dough", "sauce", "oven", "delivery",
    "pizzeria", "pizzaiolo", "pizza party", "pizza night", "pizza time",
    "pizza box", "pizza cutter", "pizza stone", "pizza peel",
    # reactions
    "delicious", "yummy", "tasty", "perfect", "amazing", "best",
    "worst", "epic", "legendary", "cursed", "blessed",
    # formats
    "meme", "funny", "viral", "trending", "satisfying", "asmr",
    "recipe", "tutorial", "review", "mukbang", "eating", "cooking",
    # brands
    "dominos", "pizza hut", "papa johns", "little caesars", "costco",
    "digiorno", "totinos", "red baron", "tombstone",
    # occasions
    "birthday", "party", "weekend", "friday", "game day", "super bowl",
    "movie night", "date night", "hangover", "midnight", "late night",
)

TAG_PATTERNS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bcrimes?\b", re.I),                  "pizza-crimes"),
    (re.compile(r"\bfail(s|ed|ure)?\b", re.I),          "fail"),
    (re.compile(r"\bwin(s|ner)?\b", re.I),              "win"),
    (re.compile(r"\bwtf\b", re.I),                      "wtf"),
    (re.compile(r"\bomg\b", re.I),                      "omg"),
    (re.compile(r"\bfood\s*porn\b", re.I),              "food-porn"),
    (re.compile(r"\bhomemade\b", re.I),                 "homemade"),
    (re.compile(r"\bdiy\b", re.I),                      "diy"),
    (re.compile(r"\brestaurant\b", re.I),               "restaurant"),
    (re.compile(r"\bfrozen\b", re.I),                   "frozen-pizza"),
    (re.compile(r"\bcheesy\b", re.I),                   "cheesy"),
    (re.compile(r"\bcrispy\b", re.I),                   "crispy"),
    (re.compile(r"\b(odd|weird|strange|unusual)\b", re.I), "unusual"),
    (re.compile(r"\b(italian?|antipasto)\b", re.I),     "italian"),
    (re.compile(r"\bgif\b", re.I),                      "animated"),
    (re.compile(r"\b(cat|dog|pet)s?\b", re.I),          "pets"),
    (re.compile(r"\bkids?\b", re.I),                    "kids"),
    (re.compile(r"\bcelebrit(y|ies)\b", re.I),          "celebrity"),
    (re.compile(r"\bvegan\b", re.I),                    "vegan"),
    (re.compile(r"\bvegetarian\b", re.I),               "vegetarian"),
    (re.compile(r"\bgluten[\s-]*free\b", re.I),         "gluten-free"),
    (re.compile(r"\bketo\b", re.I),                     "keto"),
    (re.compile(r"\bhealthy\b", re.I),                  "healthy"),
)

_KEYWORD_RES = tuple(
    (re.compile(rf"\b{re.escape(kw)}\b", re.I), kw.replace(" ", "-"))
    for kw in TAG_KEYWORDS
)


def detect_tags(text: str | None) -> list[str]:
    """Return tags detected in `text`, keyword hits first, then pattern hits."""
    if not text:
        return []
    tags: list[str] = []
    for regex, tag in _KEYWORD_RES:
        if tag not in tags and regex.search(text):
            tags.append(tag)
    for regex, tag in TAG_PATTERNS:
        if tag not in tags and regex.search(text):
            tags.append(tag)
    return tags


def is_pizza_related(*texts: str | None) -> bool:
    """Plain substring match against TOPIC_KEYWORDS over the joined texts."""
    haystack = " ".join(t for t in texts if t).lower()
    return any(kw in haystack for kw in TOPIC_KEYWORDS)
