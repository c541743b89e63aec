"""Tag registry: maps hardware addresses to stable numeric tag ids."""

from __future__ import annotations

import logging
from typing import Optional

from app.schemas import Tag
from datastore.table import JsonTable
from errors import ValidationError

logger = logging.getLogger(__name__)


EXTERNAL_ID_MAX_LENGTH = 32


def tag_key(tag: Tag) -> str:
    return tag.external_id


def _check_external_id(external_id: Optional[str]) -> str:
    if not external_id:
        raise ValidationError("Missing external id.")
    if len(external_id) > EXTERNAL_ID_MAX_LENGTH:
        raise ValidationError(f"External id longer than {EXTERNAL_ID_MAX_LENGTH} characters.")
    return external_id


class TagRegistry:

    def __init__(self, table: JsonTable[Tag]) -> None:
        self.table = table

    def get_tags(self) -> list[Tag]:
        return self.table.scan()

    def get_tag(self, tag_id: Optional[int]) -> Optional[Tag]:
        if not tag_id:
            raise ValidationError("Illegal tag id passed.")
        return self.table.get(tag_id)

    def get_tag_by_external_id(self, external_id: Optional[str]) -> Optional[Tag]:
        if not external_id:
            raise ValidationError("Illegal external id passed.")
        return self.table.get_by_key(external_id)

    def insert_tag(self, external_id: Optional[str], name: Optional[str] = None) -> int:
        external_id = _check_external_id(external_id)
        tag = self.table.insert(Tag(external_id=external_id, name=name))
        assert tag.id is not None
        logger.info("Created tag", extra={"tag_id": tag.id, "external_id": external_id})
        return tag.id

    def ensure_tag(self, external_id: Optional[str], name: Optional[str] = None) -> Tag:
        """Return the tag for ``external_id``, creating it when unknown.

        An existing tag keeps its name even when a different ``name`` is passed.
        """
        external_id = _check_external_id(external_id)
        tag, created = self.table.get_or_insert(Tag(external_id=external_id, name=name))
        if created:
            logger.info("Created tag", extra={"tag_id": tag.id, "external_id": external_id})
        return tag
