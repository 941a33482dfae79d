"""
Mapping of splat attributes onto declared vertex properties.

Exporters disagree on property names, so every attribute is looked up
through a fixed alias list; the first alias present in the vertex element
wins. Lookups are case-insensitive.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple
import logging

from ._errors import MissingElement, MissingField, UnsupportedListProperty
from ._header import ListProperty, PlyHeader
from ._scalar import ScalarType

logger = logging.getLogger(__name__)

# (property index, declared type)
Field = Tuple[int, ScalarType]

POSITION_ALIASES = (
    ("x", "pos_x", "position_x"),
    ("y", "pos_y", "position_y"),
    ("z", "pos_z", "position_z"),
)
SCALE_ALIASES = (
    ("scale_0", "sx", "scale_x", "scalex"),
    ("scale_1", "sy", "scale_y", "scaley"),
    ("scale_2", "sz", "scale_z", "scalez"),
)
OPACITY_ALIASES = ("opacity", "alpha", "opac")
ROT_WXYZ_NAMES = ("rot_0", "rot_1", "rot_2", "rot_3")
ROT_XYZW_NAMES = ("qx", "qy", "qz", "qw")
RGB_ALIASES = (("red", "r"), ("green", "g"), ("blue", "b"))
SH_DC_NAMES = ("f_dc_0", "f_dc_1", "f_dc_2")


class QuatLayout(Enum):
    """Component order of the four stored quaternion values."""
    WXYZ = "wxyz"  # rot_0..rot_3
    XYZW = "xyzw"  # qx, qy, qz, qw


class ColorSource(Enum):
    """Where per-record RGB comes from."""
    RGB = "rgb"
    SH_DC = "sh_dc"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedFields:
    """Property locations for every splat attribute of the vertex element.

    Attributes:
        count: Declared number of vertex records
        types: Declared type of every vertex property, in file order
        position: x, y, z fields
        scale: Three scale fields
        rotation: Four quaternion fields in stored order
        quat_layout: How ``rotation`` is ordered
        opacity: Opacity field
        color_source: Which color encoding is present
        color: Three color fields, or None when ``color_source`` is NONE
    """
    count: int
    types: Tuple[ScalarType, ...]
    position: Tuple[Field, Field, Field]
    scale: Tuple[Field, Field, Field]
    rotation: Tuple[Field, Field, Field, Field]
    quat_layout: QuatLayout
    opacity: Field
    color_source: ColorSource
    color: Optional[Tuple[Field, Field, Field]]


def pick_name(table: Dict[str, Field], names: Sequence[str]) -> Optional[Field]:
    """Return the field for the first name in ``names`` present in ``table``."""
    for name in names:
        found = table.get(name.lower())
        if found is not None:
            return found
    return None


def _pick_all(table: Dict[str, Field], groups: Sequence[Sequence[str]]) -> Optional[tuple]:
    picked = tuple(pick_name(table, names) for names in groups)
    if any(p is None for p in picked):
        return None
    return picked


def _require(table: Dict[str, Field], names: Sequence[str]) -> Field:
    found = pick_name(table, names)
    if found is None:
        raise MissingField(names[0])
    return found


def resolve_fields(header: PlyHeader, vertex_element_name: str = "vertex") -> ResolvedFields:
    """Locate every splat attribute in the vertex element.

    Args:
        header: Parsed PLY header
        vertex_element_name: Element holding the splats (case-insensitive)

    Returns:
        ResolvedFields for the element

    Raises:
        MissingElement: If the element is not declared
        UnsupportedListProperty: If the element has a list property
        MissingField: If a required attribute has no matching property
    """
    element = header.find_element(vertex_element_name)
    if element is None:
        raise MissingElement(f'PLY: element "{vertex_element_name.lower()}" not found')
    if element.has_list_properties():
        names = [p.name for p in element.properties if isinstance(p, ListProperty)]
        raise UnsupportedListProperty(
            f"PLY: {element.name} has list properties {names}, only scalar properties are supported"
        )

    # Later duplicates overwrite earlier ones
    table = {}
    for index, prop in enumerate(element.properties):
        table[prop.name.lower()] = (index, prop.type)

    position = tuple(_require(table, names) for names in POSITION_ALIASES)
    scale = tuple(_require(table, names) for names in SCALE_ALIASES)

    rotation = _pick_all(table, [(n,) for n in ROT_WXYZ_NAMES])
    quat_layout = QuatLayout.WXYZ
    if rotation is None:
        rotation = _pick_all(table, [(n,) for n in ROT_XYZW_NAMES])
        quat_layout = QuatLayout.XYZW
    if rotation is None:
        raise MissingField(
            "rotation",
            "PLY: missing quaternion fields. Expected either rot_0..rot_3 (wxyz) or qx,qy,qz,qw (xyzw)",
        )

    opacity = _require(table, OPACITY_ALIASES)

    color = _pick_all(table, RGB_ALIASES)
    color_source = ColorSource.RGB
    if color is None:
        color = _pick_all(table, [(n,) for n in SH_DC_NAMES])
        color_source = ColorSource.SH_DC
    if color is None:
        color_source = ColorSource.NONE

    resolved = ResolvedFields(
        count=element.count,
        types=tuple(p.type for p in element.properties),
        position=position,
        scale=scale,
        rotation=rotation,
        quat_layout=quat_layout,
        opacity=opacity,
        color_source=color_source,
        color=color,
    )
    logger.debug("Resolved %s fields: rotation=%s color=%s",
                 element.name, quat_layout.value, color_source.value)
    return resolved
