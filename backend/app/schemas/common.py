"""
Shared schema base.

Bodies are exchanged in camelCase (``entrepotId``, ``advancedStatus``) while
Python code keeps snake_case attribute names.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
