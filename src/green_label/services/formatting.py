"""Text helpers for product sharing and history listings."""

from datetime import UTC, datetime

from green_label.domain.products import HistoryEntry, Product


def share_text(product: Product) -> str:
    """Build the share message for a product."""
    return (
        "Check out this product's Green Score on Green Label AI!\n\n"
        f"{product.display_name}\n"
        f"Green Score: {_format_score(product.green_score)}/100\n\n"
        "#GreenLabelAI #EcoFriendly"
    )


def time_ago(timestamp: datetime, now: datetime | None = None) -> str:
    """Describe how long ago a timestamp was, in the largest whole unit."""
    current = now or datetime.now(tz=UTC)
    elapsed = _aware(current) - _aware(timestamp)
    seconds = int(elapsed.total_seconds())
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = seconds // size
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "Just now"


def history_label(entry: HistoryEntry) -> str:
    """Product name for a history row, or a barcode placeholder."""
    return entry.product_name or f"Product {entry.barcode}"


def _format_score(score: float | None) -> str:
    if score is None:
        return "N/A"
    if float(score).is_integer():
        return str(int(score))
    return f"{score:.1f}"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
