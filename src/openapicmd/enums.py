"""Enumeration type definitions"""

from enum import Enum


class KeyName(str, Enum):
    """Named (non-character) keys delivered by the terminal."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    ESCAPE = "escape"
    TAB = "tab"
    BACKSPACE = "backspace"
    DELETE = "delete"


class Mode(str, Enum):
    """Top-level interaction mode of a request form.

    At most one overlay is active at a time.
    """

    NAVIGATE = "navigate"
    EDIT = "edit"
    VARIABLE_PICKER = "variable_picker"
    LOOKUP_WIZARD = "lookup_wizard"
    TREE_VIEW = "tree_view"
    IMPORT = "import"
    SAVE = "save"


class LookupStep(str, Enum):
    ENDPOINT = "endpoint"
    VALUE_PATH = "value_path"
    LABEL_PATH = "label_path"
    PICK = "pick"


class TreeMode(str, Enum):
    BROWSE = "browse"
    SEARCH = "search"
    CAPTURE = "capture"


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"
