# src/weekly_planner/tasks/recurrence.py

from __future__ import annotations

"""
Recurrence engine.

Pure decision logic: given the weekly templates and the instances that already
exist for today, decide which instances still have to be created.

Nothing here touches a store or reads the clock; the sync loop passes today's
date and weekday in and commits the result.
"""

from collections.abc import Iterable
from datetime import date

from .task_models import NewTask, RecurringTemplate, Task


def instances_on(instances: Iterable[Task], day: date) -> list[Task]:
    return [t for t in instances if t.date == day]


def compute_missing_instances(
    templates: Iterable[RecurringTemplate],
    existing_today: Iterable[Task],
    today: date,
    today_weekday: int,
) -> list[NewTask]:
    """
    Return one creation request per template that is due today and has no
    instance yet.

    - existing_today: the instances dated `today` (other dates are ignored by contract)
    - today_weekday: must be derived from `today` by the caller (0 = Sunday)

    Calling this again with `existing_today` extended by the materialized
    requests yields an empty list.
    """
    present = {t.origin_template_id for t in existing_today if t.origin_template_id}

    out: list[NewTask] = []
    for tpl in templates:
        if tpl.weekday != today_weekday or tpl.id in present:
            continue
        out.append(
            NewTask(
                title=tpl.title,
                description=tpl.description,
                priority=tpl.priority,
                date=today,
                done=False,
                origin_template_id=tpl.id,
            )
        )
        # A template listed twice still yields a single request.
        present.add(tpl.id)
    return out


def instances_to_refresh(template: RecurringTemplate, instances: Iterable[Task], today: date) -> list[Task]:
    """Instances that a template edit must be copied onto: same origin, dated today."""
    return [t for t in instances if t.origin_template_id == template.id and t.date == today]
