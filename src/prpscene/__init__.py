"""
Scene property loader for Glacier level data

Rebuilds the scene object tree of a level from the geometry entity list
and the property instruction stream, guided by a registry of object type
schemas.
"""

__version__ = "0.1.0"


from . import config
from ._error import *
from ._opcode import *
from ._cursor import *
from ._value import *
from ._type import *
from ._registry import *
from ._binary import *
from ._geom import *
from ._scene import *
from ._loader import *
from ._listing import *
