# pyright: reportUnusedImport=false
from indimap.attribute_map import AttributeMap, to_plain
from indimap.dispatch import ACCESSOR_RULES, AccessorRule, AccessorView
from indimap.errors import (
    AttributeMapError,
    CyclicAssignmentError,
    InvalidKeyError,
    UnknownMemberError,
)
from indimap.keys import normalize_key
from indimap.options import MapOptions
from indimap.suppliers import wire_supplier

__version__ = '0.1.0'
