import json
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Union

from pydantic_core import PydanticSerializationError, to_jsonable_python


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, timedelta):
            return obj.total_seconds()
        elif isinstance(obj, Enum):
            return obj.value
        # Pydantic models and anything else pydantic knows how to serialize
        try:
            return to_jsonable_python(obj)
        except PydanticSerializationError:
            return repr(obj)


def dumps(obj: Any, **kwargs) -> str:
    """JSON dumps with datetime, enum and pydantic model support."""
    return json.dumps(obj, cls=EnhancedJSONEncoder, **kwargs)


def loads(s: Union[str, bytes, bytearray], **kwargs) -> Any:
    """Standard JSON loads function."""
    return json.loads(s, **kwargs)
