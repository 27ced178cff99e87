import contextlib
import json
from json import JSONDecodeError as JSONDecodeError
from types import ModuleType
from typing import Any, AnyStr

try:
    import orjson as _orjson

except ImportError:
    _orjson = None

try:
    import ujson as _ujson
except ImportError:
    _ujson = None


__all__ = [
    "dumps",
    "loads",
    "JSONDecodeError",
    "get_origin",
]

if _orjson:
    __origin = _orjson
elif _ujson:
    __origin = _ujson
else:
    __origin = json


def dumps(obj: Any, *, sort_keys: bool = False, default=None, **kwargs) -> str:
    """
    Serialize ``obj`` to a JSON formatted ``str``.

    Parameters
    ----------
    obj : Any
        The object to serialize.
    sort_keys: bool, optional
        If ``True`` (default: ``False``), then the output of dictionaries will be sorted by key.
    default: Callable, optional
        Called for objects that can't otherwise be serialized.
        It should return a JSON encodable version of the object or raise a ``TypeError``.
    kwargs: Any, optional
        Additional keyword arguments are passed to ``json.dumps``.

    Returns
    -------
    str
        The JSON string representation of ``obj``.
    """
    if _orjson:
        with contextlib.suppress(_orjson.JSONEncodeError):
            option = _orjson.OPT_SORT_KEYS if sort_keys else None
            return _orjson.dumps(obj, default=default, option=option).decode()
    if _ujson:
        return _ujson.dumps(obj, sort_keys=sort_keys, escape_forward_slashes=False)
    return json.dumps(obj, sort_keys=sort_keys, default=default, **kwargs)


def loads(obj: AnyStr | bytes | bytearray | memoryview | str, **kwargs) -> Any:
    """Deserialize ``obj`` (a ``str``, ``bytes`` or ``bytearray`` instance containing a JSON document) to a Python object.

    Raises
    ------
    json.JSONDecodeError
        If the input is not valid JSON.
    """
    if _orjson:
        with contextlib.suppress(_orjson.JSONDecodeError):
            return _orjson.loads(obj)
    if _ujson:
        with contextlib.suppress(_ujson.JSONDecodeError):
            return _ujson.loads(obj)
    return json.loads(obj, **kwargs)


def get_origin() -> ModuleType:
    """Return the json module being used."""
    return __origin
