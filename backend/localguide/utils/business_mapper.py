"""Map origin place records to app-level businesses."""

from collections.abc import Iterable

from localguide.models import Business, LocationSnapshot, Place, ReviewStats

# App category -> Geoapify categories
APP_CATEGORY_MAP: dict[str, list[str]] = {
    "restaurants": ["catering.restaurant"],
    "cafes": ["catering.cafe"],
    "fast_food": ["catering.fast_food"],
}

PLACEHOLDER_IMAGES = [
    "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=800",
    "https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800",
    "https://images.unsplash.com/photo-1572802419224-296b0aeee0d9?w=800",
    "https://images.unsplash.com/photo-1559339352-11d035aa65de?w=800",
]

PLACEHOLDER_HOURS = {
    "Monday": "9:00 AM - 9:00 PM",
    "Tuesday": "9:00 AM - 9:00 PM",
    "Wednesday": "9:00 AM - 9:00 PM",
    "Thursday": "9:00 AM - 9:00 PM",
    "Friday": "9:00 AM - 10:00 PM",
    "Saturday": "10:00 AM - 10:00 PM",
    "Sunday": "10:00 AM - 8:00 PM",
}

PREMIUM_CUISINES = ("fine_dining", "steak_house", "seafood")


def map_app_categories(categories: Iterable[str]) -> list[str]:
    """Translate app categories to origin categories.

    An empty selection means every supported category. Unknown app
    categories are ignored.
    """
    selected = [c for c in categories if c]
    if not selected:
        return [cat for cats in APP_CATEGORY_MAP.values() for cat in cats]

    mapped: list[str] = []
    for category in selected:
        for origin_category in APP_CATEGORY_MAP.get(category, []):
            if origin_category not in mapped:
                mapped.append(origin_category)
    return mapped


def determine_category(place: Place) -> str:
    for app_category, origin_categories in APP_CATEGORY_MAP.items():
        if any(cat in origin_categories for cat in place.categories):
            return app_category
    return "restaurants"


def estimate_price_level(place: Place) -> int:
    if "catering.fast_food" in place.categories:
        return 1
    if "catering.cafe" in place.categories:
        return 2
    if "catering.restaurant" in place.categories:
        cuisine = (place.details.cuisine or "").lower()
        return 3 if any(premium in cuisine for premium in PREMIUM_CUISINES) else 2
    return 2


def determine_features(place: Place) -> list[str]:
    features: list[str] = []
    if place.details.takeaway:
        features.append("Takeaway")
    if place.details.cuisine:
        features.append(f"{place.details.cuisine} Cuisine")
    if place.details.brand:
        features.append(place.details.brand)
    if "catering.cafe" in place.categories:
        features.extend(["Coffee", "Pastries"])
    return features or ["Local Favorite", "Great Service"]


def _description(place: Place, category: str) -> str:
    cuisine = f" serving {place.details.cuisine} cuisine" if place.details.cuisine else ""
    descriptions = {
        "restaurants": f"{place.name} is a local restaurant{cuisine} offering delicious meals in a welcoming atmosphere.",
        "cafes": f"{place.name} is a cozy cafe perfect for coffee, pastries, and casual meetings.",
        "fast_food": f"{place.name} offers quick and tasty meals for those on the go.",
    }
    return descriptions.get(category, descriptions["restaurants"])


def map_place_to_business(place: Place, stats: ReviewStats | None = None) -> Business:
    stats = stats or ReviewStats()
    category = determine_category(place)
    image = PLACEHOLDER_IMAGES[len(place.name) % len(PLACEHOLDER_IMAGES)]

    return Business(
        id=place.place_id,
        place_id=place.place_id,
        name=place.name,
        category=category,
        rating=stats.rating,
        review_count=stats.review_count,
        price_level=estimate_price_level(place),
        image_url=image,
        address=place.formatted,
        hours=dict(PLACEHOLDER_HOURS),
        coordinates=LocationSnapshot(latitude=place.lat, longitude=place.lon),
        photos=[image],
        description=_description(place, category),
        features=determine_features(place),
        city=place.address.city,
        country=place.address.country,
    )
