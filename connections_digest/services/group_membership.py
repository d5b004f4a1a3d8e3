"""Group membership source — who counts as a connector in a scoping group.

Active membership means member_status == Active and not archived. With
include_descendants the walk follows child groups (skipping archived
ones) and tolerates cycles in the parent chain.
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Group, GroupMember, GroupMemberStatus

log = logging.getLogger("digest.groups")


def get_group_by_guid(db: Session, guid: str | None) -> Group | None:
    if not guid:
        return None
    return db.query(Group).filter(func.lower(Group.guid) == guid.lower()).first()


def get_descendant_group_ids(db: Session, group_id: int) -> list[int]:
    """Breadth-first list of non-archived descendants of group_id."""
    seen = {group_id}
    ordered: list[int] = []
    frontier = [group_id]
    while frontier:
        children = (
            db.query(Group.id)
            .filter(
                Group.parent_group_id.in_(frontier),
                Group.is_archived.is_(False),
            )
            .all()
        )
        frontier = []
        for (child_id,) in children:
            if child_id in seen:
                continue
            seen.add(child_id)
            ordered.append(child_id)
            frontier.append(child_id)
    return ordered


def get_active_member_person_ids(
    db: Session, group: Group, include_descendants: bool = False
) -> set[int]:
    """Person ids of active members of group (optionally its descendants too)."""
    group_ids = [group.id]
    if include_descendants:
        group_ids.extend(get_descendant_group_ids(db, group.id))

    rows = (
        db.query(GroupMember.person_id)
        .filter(
            GroupMember.group_id.in_(group_ids),
            GroupMember.member_status == GroupMemberStatus.ACTIVE,
            GroupMember.is_archived.is_(False),
        )
        .distinct()
        .all()
    )
    person_ids = {pid for (pid,) in rows}
    log.debug(
        f"Group {group.name!r}: {len(person_ids)} active member(s) "
        f"across {len(group_ids)} group(s)"
    )
    return person_ids
