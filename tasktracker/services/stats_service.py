from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import Session, col, func, select

from tasktracker.core.time_utils import utc_now
from tasktracker.models.activity_log import ActivityLog
from tasktracker.models.task import Task, TaskPriority, TaskStatus
from tasktracker.models.user import User, UserRole
from tasktracker.services.task_service import member_scope_clause, overdue_clause

TOP_TAGS = 10


def completion_rate(completed: int, total: int) -> float:
    """Percentage of completed tasks, 0 when there are none."""
    if total <= 0:
        return 0.0
    return round(completed / total * 100, 1)


def percent_change(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def _status_key(status: TaskStatus) -> str:
    return status.value.replace("-", "_")


class StatsService:
    """Read-only aggregates over tasks, users and the activity log."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _scope(self, actor: Optional[User]) -> list:
        if actor is None or actor.role == UserRole.ADMIN:
            return []
        return [member_scope_clause(actor.user_id)]

    def _count_tasks(self, *where) -> int:
        stmt = select(func.count()).select_from(Task)
        if where:
            stmt = stmt.where(*where)
        return int(self.db.exec(stmt).one())

    def _by_status(self, *where) -> Dict[str, int]:
        stmt = select(Task.status, func.count()).group_by(Task.status)
        if where:
            stmt = stmt.where(*where)
        counts = {status: int(n) for status, n in self.db.exec(stmt).all()}
        return {_status_key(s): counts.get(s, 0) for s in TaskStatus}

    def _by_priority(self, *where) -> Dict[str, int]:
        stmt = select(Task.priority, func.count()).group_by(Task.priority)
        if where:
            stmt = stmt.where(*where)
        counts = {priority: int(n) for priority, n in self.db.exec(stmt).all()}
        return {p.value: counts.get(p, 0) for p in TaskPriority}

    # ------------------------------------------------------------------

    def overview(self, actor: User) -> Dict[str, Any]:
        now = utc_now()
        scope = self._scope(actor)
        by_status = self._by_status(*scope)
        total = sum(by_status.values())

        week_start = now - timedelta(days=7)
        prev_week_start = now - timedelta(days=14)
        this_week = self._count_tasks(*scope, col(Task.created_at) >= week_start)
        last_week = self._count_tasks(
            *scope,
            col(Task.created_at) >= prev_week_start,
            col(Task.created_at) < week_start,
        )
        due_soon = self._count_tasks(
            *scope,
            col(Task.due_date).is_not(None),
            col(Task.due_date) >= now,
            col(Task.due_date) <= now + timedelta(days=3),
            col(Task.status) != TaskStatus.DONE,
        )

        return {
            "total_tasks": total,
            "by_status": by_status,
            "by_priority": self._by_priority(*scope),
            "overdue_tasks": self._count_tasks(*scope, overdue_clause(now)),
            "due_soon_tasks": due_soon,
            "completion_rate": completion_rate(by_status["done"], total),
            "created_this_week": this_week,
            "created_last_week": last_week,
            "week_over_week_change": percent_change(this_week, last_week),
        }

    def analytics(self, actor: User, days: int = 30) -> Dict[str, Any]:
        now = utc_now()
        scope = self._scope(actor)
        first_day = now.date() - timedelta(days=days - 1)
        since = datetime.combine(first_day, datetime.min.time())

        created = self.db.exec(
            select(Task.created_at).where(*scope, col(Task.created_at) >= since)
        ).all()
        completed = self.db.exec(
            select(Task.completed_at).where(
                *scope,
                col(Task.completed_at).is_not(None),
                col(Task.completed_at) >= since,
            )
        ).all()
        created_by_day = Counter(ts.date() for ts in created)
        completed_by_day = Counter(ts.date() for ts in completed)

        series: List[Dict[str, Any]] = []
        for offset in range(days):
            day: date = first_day + timedelta(days=offset)
            series.append({
                "date": day.isoformat(),
                "created": created_by_day.get(day, 0),
                "completed": completed_by_day.get(day, 0),
            })

        tag_counts: Counter = Counter()
        for tags in self.db.exec(select(Task.tags).where(*scope)).all():
            tag_counts.update(tags or [])

        durations = self.db.exec(
            select(Task.created_at, Task.completed_at).where(
                *scope,
                col(Task.status) == TaskStatus.DONE,
                col(Task.completed_at).is_not(None),
            )
        ).all()
        hours = [(done - start).total_seconds() / 3600 for start, done in durations]
        avg_hours = round(sum(hours) / len(hours), 1) if hours else None

        return {
            "period_days": days,
            "daily": series,
            "status_distribution": self._by_status(*scope),
            "priority_distribution": self._by_priority(*scope),
            "top_tags": [{"tag": t, "count": n} for t, n in tag_counts.most_common(TOP_TAGS)],
            "average_completion_hours": avg_hours,
        }

    def team(self) -> Dict[str, Any]:
        now = utc_now()
        users = self.db.exec(select(User).order_by(col(User.created_at).asc())).all()

        per_status: Dict[Any, Dict[TaskStatus, int]] = {}
        rows = self.db.exec(
            select(Task.assignee_id, Task.status, func.count())
            .group_by(Task.assignee_id, Task.status)
        ).all()
        for assignee_id, status, n in rows:
            per_status.setdefault(assignee_id, {})[status] = int(n)

        overdue_rows = self.db.exec(
            select(Task.assignee_id, func.count())
            .where(overdue_clause(now))
            .group_by(Task.assignee_id)
        ).all()
        overdue = {assignee_id: int(n) for assignee_id, n in overdue_rows}

        performance: List[Dict[str, Any]] = []
        for u in users:
            counts = per_status.get(u.user_id, {})
            total = sum(counts.values())
            done = counts.get(TaskStatus.DONE, 0)
            performance.append({
                "user_id": str(u.user_id),
                "name": u.full_name,
                "email": u.email,
                "role": u.role.value,
                "total_tasks": total,
                "completed_tasks": done,
                "in_progress_tasks": counts.get(TaskStatus.IN_PROGRESS, 0),
                "todo_tasks": counts.get(TaskStatus.TODO, 0),
                "overdue_tasks": overdue.get(u.user_id, 0),
                "completion_rate": completion_rate(done, total),
            })
        performance.sort(key=lambda p: (-p["completion_rate"], -p["total_tasks"], p["email"]))

        with_tasks = [p["completion_rate"] for p in performance if p["total_tasks"] > 0]
        return {
            "user_performance": performance,
            "team_summary": {
                "total_members": len(users),
                "active_members": len(with_tasks),
                "avg_completion_rate": round(sum(with_tasks) / len(with_tasks), 1) if with_tasks else 0.0,
                "total_overdue_tasks": sum(overdue.values()),
            },
        }

    def system(self, *, started_at: datetime, version: str, environment: str) -> Dict[str, Any]:
        now = utc_now()
        tasks_total = self._count_tasks()
        with_due = self._count_tasks(col(Task.due_date).is_not(None))
        with_desc = self._count_tasks(col(Task.description).is_not(None), col(Task.description) != "")
        # tags는 JSON 배열이라 파이썬에서 센다
        with_tags = sum(1 for tags in self.db.exec(select(Task.tags)).all() if tags)

        def pct(n: int) -> float:
            return round(n / tasks_total * 100, 1) if tasks_total else 0.0

        percentages = [pct(with_due), pct(with_desc), pct(with_tags)]
        role_rows = self.db.exec(select(User.role, func.count()).group_by(User.role)).all()
        by_role = {role: int(n) for role, n in role_rows}
        oldest = self.db.exec(select(func.min(Task.created_at))).one()

        return {
            "system_metrics": {
                "users": sum(by_role.values()),
                "admins": by_role.get(UserRole.ADMIN, 0),
                "members": by_role.get(UserRole.MEMBER, 0),
                "tasks": tasks_total,
                "activity_logs": int(self.db.exec(select(func.count()).select_from(ActivityLog)).one()),
                "recent_activity_24h": self.recent_activity(now - timedelta(hours=24)),
            },
            "data_health": {
                "tasks": {
                    "total": tasks_total,
                    "with_due_date": with_due,
                    "with_description": with_desc,
                    "with_tags": with_tags,
                    "completeness_score": round(sum(percentages) / 3, 1) if tasks_total else 0.0,
                },
            },
            "system_info": {
                "server_uptime": int((now - started_at).total_seconds()),
                "oldest_task_date": oldest,
                "version": version,
                "environment": environment,
            },
        }

    def recent_activity(self, since: datetime, user_id=None) -> int:
        stmt = select(func.count()).select_from(ActivityLog).where(col(ActivityLog.timestamp) >= since)
        if user_id is not None:
            stmt = stmt.where(ActivityLog.user_id == user_id)
        return int(self.db.exec(stmt).one())

    def user_stats(self, actor: User) -> Dict[str, Any]:
        now = utc_now()
        mine = Task.assignee_id == actor.user_id
        by_status = self._by_status(mine)
        total = sum(by_status.values())
        return {
            "my_tasks": total,
            "completed_tasks": by_status["done"],
            "in_progress_tasks": by_status["in_progress"],
            "todo_tasks": by_status["todo"],
            "overdue_tasks": self._count_tasks(mine, overdue_clause(now)),
            "completion_rate": completion_rate(by_status["done"], total),
            "created_by_me": self._count_tasks(Task.created_by_id == actor.user_id),
            "recent_activity_24h": self.recent_activity(now - timedelta(hours=24), actor.user_id),
        }
