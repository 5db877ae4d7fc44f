# fundflow/domain/graph/enums.py
from enum import StrEnum

DEFAULT_CLASSIFICATION = "ordinary"


class EdgeDirection(StrEnum):
    """Direction of an aggregated edge relative to the anchor entity."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


class NodeCategory(StrEnum):
    GREEN = "green"    # receiving account
    AMBER = "amber"    # paying account
    PURPLE = "purple"  # transit account
    RED = "red"        # shell company
    BLUE = "blue"      # ordinary / unclassified


# ADR: fixed table, not derived. Downstream renderers key their palette on it.
CATEGORY_BY_TAG: dict[str, NodeCategory] = {
    "receiving account": NodeCategory.GREEN,
    "paying account": NodeCategory.AMBER,
    "transit account": NodeCategory.PURPLE,
    "shell company": NodeCategory.RED,
}

CATEGORY_COLORS: dict[NodeCategory, str] = {
    NodeCategory.GREEN: "#52c41a",
    NodeCategory.AMBER: "#faad14",
    NodeCategory.PURPLE: "#722ed1",
    NodeCategory.RED: "#cf1322",
    NodeCategory.BLUE: "#1890ff",
}


def category_for(tag: str | None) -> NodeCategory:
    if tag is None:
        return NodeCategory.BLUE
    return CATEGORY_BY_TAG.get(tag.strip().lower(), NodeCategory.BLUE)
