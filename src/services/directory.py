"""
Registry Directories

Thin async wrappers over the category and member registries that answer
the questions the UI and the stores actually ask: "what do I call this
category?", "how many people share the bill?".

DESIGN DECISION: A category can be deleted while expenses and calendar
entries still reference it. Nothing here raises for a missing category;
display falls back to a sentinel label, a neutral colour and a generic
icon instead.
"""

from typing import Optional

from src.models.household import Category, Member
from src.services.storage.interface import CategoryRegistry, MemberRegistry


UNKNOWN_CATEGORY = "Unknown"
DEFAULT_CATEGORY_COLOR = "#999"
GENERIC_ICON = "📋"

# Icons for well-known category names, used when a category has none.
DEFAULT_ICONS = {
    "Oil": "🛢️",
    "Current Bill": "⚡",
    "Rice": "🍚",
    "Food": "🍽️",
    "Transport": "🚗",
    "Shopping": "🛒",
    "Bills": "📄",
    "Entertainment": "🎬",
    "Health": "🏥",
    "Education": "📚",
    "Travel": "✈️",
    "Personal": "👤",
    "Work": "💼",
    "Events": "🎉",
    "Utilities": "🔌",
    "Groceries": "🛒",
    "Restaurant": "🍴",
    "Gas": "⛽",
    "Internet": "🌐",
    "Phone": "📱",
    "Rent": "🏠",
    "Insurance": "🛡️",
    "Medical": "💊",
    "Clothing": "👕",
    "Gifts": "🎁",
    "Other": "📦",
}


def icon_for(category: Optional[Category]) -> str:
    """
    Icon for a category: icon_url, then icon, then the name-based
    default, then the generic clipboard.
    """
    if category is None:
        return GENERIC_ICON
    if category.icon_url:
        return category.icon_url
    if category.icon:
        return category.icon
    name = category.name or ""
    return DEFAULT_ICONS.get(name) or DEFAULT_ICONS.get(name.title()) or GENERIC_ICON


class CategoryDirectory:
    """Display lookups over a CategoryRegistry."""

    def __init__(
        self,
        registry: CategoryRegistry,
        unknown_label: str = UNKNOWN_CATEGORY,
        default_color: str = DEFAULT_CATEGORY_COLOR,
    ):
        self._registry = registry
        self.unknown_label = unknown_label
        self.default_color = default_color

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    async def get(self, category_id: Optional[str]) -> Optional[Category]:
        if not category_id:
            return None
        return await self._registry.get_category(category_id)

    async def list_categories(self) -> list[Category]:
        return await self._registry.list_categories()

    async def name_for(self, category_id: Optional[str]) -> str:
        category = await self.get(category_id)
        return category.name if category else self.unknown_label

    async def color_for(self, category_id: Optional[str]) -> str:
        category = await self.get(category_id)
        if category and category.color:
            return category.color
        return self.default_color

    async def icon_for(self, category_id: Optional[str]) -> str:
        return icon_for(await self.get(category_id))


class MemberDirectory:
    """Counting and lookup over a MemberRegistry."""

    def __init__(self, registry: MemberRegistry):
        self._registry = registry

    @property
    def registry(self) -> MemberRegistry:
        return self._registry

    async def list_members(self) -> list[Member]:
        return await self._registry.list_members()

    async def member_count(self) -> int:
        return await self._registry.count_members()

    async def admin_count(self) -> int:
        members = await self._registry.list_members()
        return sum(1 for m in members if m.is_admin)

    async def find_by_phone(self, phone: str) -> Optional[Member]:
        wanted = (phone or "").strip()
        for member in await self._registry.list_members():
            if member.phone == wanted:
                return member
        return None

    async def find_by_id(self, member_id: str) -> Optional[Member]:
        for member in await self._registry.list_members():
            if member.id == member_id:
                return member
        return None
