"""Field registry for the event budget.

Every addressable value in a budget has a stable string id.  Fixed
fields (production costs, sales, the show title) are listed in
:data:`SCALAR_FIELDS`; repeated groups (headliners, local DJs, CDJs,
show runners, merch vendors) and the nested "other" categories use
templated ids parameterised by one or two 1-based indices.

Ids are parsed once into a closed set of tagged variants
(:class:`Scalar`, :class:`GroupMember`, :class:`CategoryMeta`,
:class:`CategoryItem`) so callers dispatch on type instead of
re-matching strings.  The module also owns the label grammar of the
older snapshot generations (semantic labels such as
``"Headliner 3 Fee"`` and the alias table) and the document order
used when a budget is written out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Pattern, Tuple, Union

from .config import MAX_REPEAT_COUNT

logger = logging.getLogger(__name__)

FORMAT_KEY = "XODIA_BUDGET_VERSION"
CURRENT_VERSION = 4
ID_PREFIX = "ID:"
_VERSION_LABELS = {FORMAT_KEY.upper(), "V"}

# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScalarField:
    id: str
    label: str
    section: str
    kind: str = "number"  # text | number | date | count
    default: str = ""
    persist: bool = True


# Registry order is document order: the repeated slots of a group are
# written directly after the group's count field.
SCALAR_FIELDS: Tuple[ScalarField, ...] = (
    ScalarField("showTitle", "Show Title", "Event", "text"),
    ScalarField("showDate", "Show Date", "Event", "date"),
    ScalarField("numHeadliners", "Number of Headliners", "Headliners", "count", "1"),
    ScalarField("directSupport", "Direct Support Fee", "Support"),
    ScalarField("numLocalDJs", "Number of Local DJs", "Support", "count", "0"),
    ScalarField("vjFee", "VJ Fee", "Production"),
    ScalarField("venue", "Venue", "Production"),
    ScalarField("ledWall", "LED Wall", "Production"),
    ScalarField("lights", "Lights", "Production"),
    ScalarField("lasers", "Lasers", "Production"),
    ScalarField("numCDJs", "Number of CDJs", "Gear", "count", "0"),
    ScalarField("sound", "Sound", "Gear"),
    ScalarField("mixer", "Mixer", "Gear"),
    ScalarField("table", "Table", "Gear"),
    ScalarField("facebookAdsXodia", "Facebook Ads XODIA", "Marketing"),
    ScalarField("facebookAdsSpaceCampHQ", "Facebook Ads SPACE CAMP HQ", "Marketing"),
    ScalarField("instagramAdsXodia", "Instagram Ads XODIA", "Marketing"),
    ScalarField("instagramAdsSpaceCampHQ", "Instagram Ads SPACE CAMP HQ", "Marketing"),
    ScalarField("physicalFlyers", "Physical Flyers", "Marketing"),
    ScalarField("eventbriteAds", "Eventbrite Ads", "Marketing"),
    ScalarField("doorStaff", "Door Staff", "Staff"),
    ScalarField("merchTable", "Merch Table", "Staff"),
    ScalarField("transportation", "Transportation", "Staff"),
    ScalarField("numShowRunners", "Number of Show Runners", "Staff", "count", "0"),
    ScalarField("numOtherCategories", "Number of Other Categories", "Other", "count", "0"),
    ScalarField("eventbriteSales", "Eventbrite Sales", "Eventbrite"),
    ScalarField("djPresales", "DJ Presales", "Presales"),
    ScalarField("promoTeam", "Promo Team", "Promo"),
    ScalarField("doorSales", "Door Sales", "Door"),
    ScalarField("merchSold", "Merch Sold", "Merch Sold"),
    ScalarField("numMerchVendors", "Number of Merch Vendors", "Merch Vendors", "count", "0"),
    # UI-only controls: live while the app runs, never written to a snapshot.
    ScalarField("budgetSelector", "Saved Budget", "UI", "text", persist=False),
    ScalarField("csvFileInput", "Snapshot File", "UI", "text", persist=False),
)

SCALARS: Dict[str, ScalarField] = {field.id: field for field in SCALAR_FIELDS}

# ---------------------------------------------------------------------------
# Repeated groups and other categories
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupSpec:
    kind: str
    count_id: str
    members: Tuple[str, ...]
    labels: Tuple[str, ...]  # semantic row prefixes, e.g. "Headliner" in "Headliner 2 Fee"

    def field_id(self, member: str, index: int) -> str:
        return f"{self.kind}_{member}_{index}"

    def slot_ids(self, index: int) -> List[str]:
        return [self.field_id(member, index) for member in self.members]


GROUPS: Dict[str, GroupSpec] = {
    "headliner": GroupSpec("headliner", "numHeadliners", ("name", "fee", "hotel", "rider"), ("Headliner",)),
    "localDJ": GroupSpec("localDJ", "numLocalDJs", ("name", "fee"), ("Local DJ",)),
    "cdj": GroupSpec("cdj", "numCDJs", ("fee",), ("CDJ",)),
    "showRunner": GroupSpec("showRunner", "numShowRunners", ("fee",), ("Show Runner",)),
    "merchVendor": GroupSpec("merchVendor", "numMerchVendors", ("name", "fee"), ("Vendor", "Merch Vendor")),
}
GROUP_ORDER: Tuple[str, ...] = tuple(GROUPS)
_GROUPS_BY_COUNT_ID = {group.count_id: group for group in GROUPS.values()}

OTHER_CATEGORY_COUNT_ID = "numOtherCategories"
CATEGORY_NAMESPACE = "otherCategory"
CATEGORY_SHELL_MEMBERS: Tuple[str, ...] = ("name", "count")
CATEGORY_ITEM_MEMBERS: Tuple[str, ...] = ("name", "fee")


def category_name_id(category: int) -> str:
    return f"otherCategoryName_{category}"


def category_count_id(category: int) -> str:
    return f"otherCategoryCount_{category}"


def category_shell_id(category: int, member: str) -> str:
    return category_count_id(category) if member == "count" else category_name_id(category)


def category_item_id(category: int, member: str, index: int) -> str:
    return f"otherCategory_{category}_item{member.capitalize()}_{index}"


def item_namespace(category: int) -> str:
    """Group Store namespace holding the item rows of one category."""
    return f"{CATEGORY_NAMESPACE}_{category}"


COUNT_IDS = frozenset(
    [group.count_id for group in GROUPS.values()] + [OTHER_CATEGORY_COUNT_ID]
)

# ---------------------------------------------------------------------------
# Tagged field-id variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Scalar:
    id: str

    @property
    def field_id(self) -> str:
        return self.id


@dataclass(frozen=True)
class GroupMember:
    kind: str
    index: int
    member: str

    @property
    def field_id(self) -> str:
        return GROUPS[self.kind].field_id(self.member, self.index)


@dataclass(frozen=True)
class CategoryMeta:
    index: int
    field: str  # name | count

    @property
    def field_id(self) -> str:
        return category_shell_id(self.index, self.field)


@dataclass(frozen=True)
class CategoryItem:
    category: int
    index: int
    member: str  # name | fee

    @property
    def field_id(self) -> str:
        return category_item_id(self.category, self.member, self.index)


FieldRef = Union[Scalar, GroupMember, CategoryMeta, CategoryItem]

_CATEGORY_META_RE = re.compile(r"^otherCategory(Name|Count)_(\d+)$")
_CATEGORY_ITEM_RE = re.compile(r"^otherCategory_(\d+)_item(Name|Fee)_(\d+)$")
_GROUP_MEMBER_RE = re.compile(r"^([A-Za-z]+)_([a-z]+)_(\d+)$")


def parse_field_id(field_id: str) -> FieldRef:
    """Classify a field id.  Anything unrecognised is an opaque :class:`Scalar`."""
    match = _CATEGORY_ITEM_RE.match(field_id)
    if match:
        category, index = int(match.group(1)), int(match.group(3))
        if category >= 1 and index >= 1:
            return CategoryItem(category, index, match.group(2).lower())
        return Scalar(field_id)

    match = _CATEGORY_META_RE.match(field_id)
    if match:
        index = int(match.group(2))
        if index >= 1:
            return CategoryMeta(index, match.group(1).lower())
        return Scalar(field_id)

    match = _GROUP_MEMBER_RE.match(field_id)
    if match:
        group = GROUPS.get(match.group(1))
        index = int(match.group(3))
        if group is not None and match.group(2) in group.members and index >= 1:
            return GroupMember(group.kind, index, match.group(2))

    return Scalar(field_id)


def is_count_ref(ref: FieldRef) -> bool:
    """True for fields that control how many other fields exist."""
    if isinstance(ref, Scalar):
        return ref.id in COUNT_IDS
    return isinstance(ref, CategoryMeta) and ref.field == "count"


def is_persistable(field_id: str) -> bool:
    scalar = SCALARS.get(field_id)
    return scalar is None or scalar.persist


def parse_count(value: object, limit: Optional[int] = None) -> int:
    """Read a group count from a raw field value.

    Blank, negative and non-numeric values give 0; values above the
    configured limit are clamped to it.
    """
    text = "" if value is None else str(value).strip()
    if not text:
        return 0
    try:
        count = int(float(text))
    except (ValueError, OverflowError):
        logger.warning("Ignoring non-numeric count %r", text)
        return 0
    cap = MAX_REPEAT_COUNT if limit is None else limit
    if count > cap:
        logger.warning("Clamping count %d to %d", count, cap)
        return cap
    return max(count, 0)


# ---------------------------------------------------------------------------
# Document order
# ---------------------------------------------------------------------------


def iter_document_order(materialized: Callable[[str], int]) -> Iterator[str]:
    """Yield every field id of a budget shaped by ``materialized``.

    ``materialized(namespace)`` returns how many slots currently exist
    for a group kind, for :data:`CATEGORY_NAMESPACE`, or for a
    category's :func:`item_namespace`.
    """
    for field in SCALAR_FIELDS:
        yield field.id
        group = _GROUPS_BY_COUNT_ID.get(field.id)
        if group is not None:
            for index in range(1, materialized(group.kind) + 1):
                yield from group.slot_ids(index)
        elif field.id == OTHER_CATEGORY_COUNT_ID:
            for category in range(1, materialized(CATEGORY_NAMESPACE) + 1):
                yield category_name_id(category)
                yield category_count_id(category)
                for index in range(1, materialized(item_namespace(category)) + 1):
                    for member in CATEGORY_ITEM_MEMBERS:
                        yield category_item_id(category, member, index)


# ---------------------------------------------------------------------------
# Label resolution for older snapshot generations
# ---------------------------------------------------------------------------

LABEL_ALIASES: Dict[str, str] = {
    "Flyer Cost": "Physical Flyers",
    "Physical Flyer Cost": "Physical Flyers",
    "Flyers": "Physical Flyers",
}

# Labels that predate the current field set.  The combined ad spend rows
# are not live fields; they are migrated by the legacy split rules.
_LEGACY_LABELS: Dict[str, str] = {
    "Direct Support": "directSupport",
    "Facebook Ads": "facebookAds",
    "Facebook Ads Account": "facebookAdsAccount",
    "Instagram Ads": "instagramAds",
    "Instagram Ads Account": "instagramAdsAccount",
}

_LABEL_INDEX: Dict[str, str] = {
    **{label.casefold(): field_id for label, field_id in _LEGACY_LABELS.items()},
    **{field.label.casefold(): field.id for field in SCALAR_FIELDS if field.persist},
}


def _group_patterns() -> List[Tuple[Pattern[str], Callable[[re.Match], FieldRef]]]:
    patterns: List[Tuple[Pattern[str], Callable[[re.Match], FieldRef]]] = []
    for group in GROUPS.values():
        prefixes = "|".join(re.escape(label).replace(r"\ ", r"\s+") for label in group.labels)
        members = "|".join(group.members)
        pattern = re.compile(rf"^(?:{prefixes})\s+(\d+)\s+({members})$", re.IGNORECASE)
        patterns.append(
            (pattern, lambda m, kind=group.kind: GroupMember(kind, int(m.group(1)), m.group(2).lower()))
        )
    patterns.extend([
        (
            re.compile(r"^Category\s+(\d+)\s+Name$", re.IGNORECASE),
            lambda m: CategoryMeta(int(m.group(1)), "name"),
        ),
        (
            re.compile(r"^Category\s+(\d+)\s+Items(?:\s+Count)?$", re.IGNORECASE),
            lambda m: CategoryMeta(int(m.group(1)), "count"),
        ),
        (
            re.compile(r"^Category\s+(\d+)\s+Item\s+(\d+)\s+(Name|Fee)$", re.IGNORECASE),
            lambda m: CategoryItem(int(m.group(1)), int(m.group(2)), m.group(3).lower()),
        ),
    ])
    return patterns


_TEMPLATED_LABELS = _group_patterns()


def match_templated_label(label: str) -> Optional[FieldRef]:
    for pattern, build in _TEMPLATED_LABELS:
        match = pattern.match(label)
        if match:
            return build(match)
    return None


def is_version_label(label: str) -> bool:
    return label.strip().upper() in _VERSION_LABELS


def resolve_label(raw_label: str) -> str:
    """Map a snapshot label to a field id.

    ``ID:``-prefixed labels carry the id verbatim.  Otherwise the alias
    table is consulted, then the fixed labels, then the templated row
    grammar.  Anything left over is returned unchanged and is only
    applied if a live field with exactly that id exists.
    """
    label = (raw_label or "").strip()
    if label[: len(ID_PREFIX)].upper() == ID_PREFIX:
        return label[len(ID_PREFIX):].strip()

    label = LABEL_ALIASES.get(label, label)
    field_id = _LABEL_INDEX.get(label.casefold())
    if field_id is not None:
        return field_id

    ref = match_templated_label(label)
    if ref is not None:
        return ref.field_id
    return label


# ---------------------------------------------------------------------------
# Legacy field splits
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegacySplit:
    """A combined field that was later split per ad account."""

    legacy_id: str
    qualifier_id: str
    primary_id: str
    alternate_id: str
    alternate_qualifier: str = "SPACE CAMP HQ"

    def target_for(self, qualifier: Optional[str]) -> str:
        if (qualifier or "").strip().upper() == self.alternate_qualifier:
            return self.alternate_id
        return self.primary_id


LEGACY_SPLITS: Tuple[LegacySplit, ...] = (
    LegacySplit("facebookAds", "facebookAdsAccount", "facebookAdsXodia", "facebookAdsSpaceCampHQ"),
    LegacySplit("instagramAds", "instagramAdsAccount", "instagramAdsXodia", "instagramAdsSpaceCampHQ"),
)
LEGACY_IDS = frozenset(
    field_id for split in LEGACY_SPLITS for field_id in (split.legacy_id, split.qualifier_id)
)
