"""ClientCache key layout for habit reads and derived views.

Date-scoped keys end with the date key, so clearing ``day_color_prefix(user,
"2026-10")`` drops every cached day color of October 2026.
"""


def routine_items(user_id: str) -> str:
    return f"routine_items:{user_id}"


def day_color(user_id: str, date_key: str) -> str:
    return f"day_color:{user_id}:{date_key}"


def day_color_prefix(user_id: str, date_prefix: str = "") -> str:
    return f"day_color:{user_id}:{date_prefix}"


def streaks(user_id: str, today: str) -> str:
    return f"streaks:{user_id}:{today}"


def streaks_prefix(user_id: str) -> str:
    return f"streaks:{user_id}:"


def activity_prefix(user_id: str, date_key: str = "") -> str:
    return f"activity:{user_id}:{date_key}"
