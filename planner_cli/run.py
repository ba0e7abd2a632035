# -*- coding: utf-8 -*-
import typing as t
from datetime import date

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from auth_server.gate import AuthGate
from planner_server.catalog import (
    ATTENDANCE_STATUSES,
    GRADE_LABELS,
    GRADES,
    SCHEDULE_LABELS,
    SCHEDULES,
    STATUS_GROUPS,
    next_attendance,
    status_icon,
)
from planner_server.config import PLANNER_STORAGE_PATH
from planner_server.errors import PlannerError
from planner_server.models import ClassRoom
from planner_server.school_calendar import (
    DAY_TYPES,
    build_school_calendar,
    load_calendar,
    parse_iso_date,
    save_calendar,
    toggle_day_type,
    update_calendar_day,
)
from planner_server.storage import JsonFileStorage
from planner_server.store import PlannerStore


console = Console()

ATTENDANCE_STYLES = {"present": "green", "absent": "red", "tardy": "yellow"}


class PlannerContext:
    """Storage, store and auth gate shared by every command of one invocation."""

    def __init__(self, storage_path: str) -> None:
        self.storage = JsonFileStorage(storage_path)
        self.gate = AuthGate(self.storage)
        self._store: t.Optional[PlannerStore] = None

    @property
    def store(self) -> PlannerStore:
        if self._store is None:
            self._store = PlannerStore(self.storage)
            self._store.hydrate()
            if self._store.error:
                console.print(f"[red]⚠ {self._store.error}[/red]")
        return self._store


def fail(message: str) -> t.NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(1)


def require_sign_in(ctx: PlannerContext) -> PlannerStore:
    """Returns the store, or exits when nobody is signed in."""
    if not ctx.gate.signed_in:
        fail("Not signed in. Run 'planner login' first.")
    return ctx.store


def ensure_saved(store: PlannerStore) -> None:
    """Exits with the banner message when the last change was not written."""
    if store.error:
        fail(store.error)


def render_result(ok: bool, message: str) -> None:
    if ok:
        console.print(f"[bold green]✅ {message}[/bold green]")
    else:
        fail(message)


def create_roster_table(classroom: ClassRoom, day: t.Optional[str] = None) -> Table:
    """Create a roster table for a class, with attendance when a day is given."""
    grade = GRADE_LABELS.get(classroom.grade, classroom.grade)
    schedule = SCHEDULE_LABELS.get(classroom.schedule, classroom.schedule)
    table = Table(
        title=f"🏫 {classroom.name} — {grade}, {schedule}",
        caption=f"id: {classroom.id}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="cyan", width=3)
    table.add_column("Student", style="white")
    table.add_column("Id", style="dim")
    table.add_column("Statuses")
    if day:
        table.add_column(f"Attendance {day}")

    entries = classroom.attendance_on(day) if day else {}
    for idx, student in enumerate(classroom.students, 1):
        row = [str(idx), student.name, student.id, " ".join(status_icon(s) for s in student.statuses)]
        if day:
            status = entries.get(student.id) or ""
            row.append(Text(status or "—", style=ATTENDANCE_STYLES.get(status, "dim")))
        table.add_row(*row)
    return table


@click.group()
@click.option(
    "--storage",
    "storage_path",
    default=PLANNER_STORAGE_PATH,
    show_default=True,
    envvar="PLANNER_STORAGE_PATH",
    help="JSON file holding the planner's saved data.",
)
@click.pass_context
def main(ctx: click.Context, storage_path: str) -> None:
    """Teacher planner: classes, students, status tags and attendance."""
    ctx.obj = PlannerContext(storage_path)


# ----------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------

@main.command()
@click.argument("email")
@click.option("--password", is_flag=True, help="Sign in with a password instead of an email link.")
@click.pass_obj
def login(ctx: PlannerContext, email: str, password: bool) -> None:
    """Send a sign-in link to EMAIL (or sign in with a password)."""
    if password:
        secret = click.prompt("Password", hide_input=True)
        result = ctx.gate.sign_in(email, secret)
    else:
        result = ctx.gate.send_sign_in_link(email)
    render_result(result.ok, result.message)


@main.command("complete-login")
@click.argument("link_url")
@click.option("--email", default=None, help="Email the link was sent to (defaults to the remembered one).")
@click.pass_obj
def complete_login(ctx: PlannerContext, link_url: str, email: t.Optional[str]) -> None:
    """Finish signing in with the LINK_URL from the email."""
    if not ctx.gate.is_sign_in_link(link_url):
        fail("That is not a sign-in link.")
    result = ctx.gate.complete_sign_in_from_link(email, link_url)
    render_result(result.ok, result.message)


@main.command()
@click.pass_obj
def logout(ctx: PlannerContext) -> None:
    """Sign out."""
    result = ctx.gate.sign_out()
    render_result(result.ok, result.message)


@main.command()
@click.pass_obj
def whoami(ctx: PlannerContext) -> None:
    """Show the signed-in user."""
    user = ctx.gate.current_user
    if user is None:
        console.print("[dim]Not signed in.[/dim]")
    else:
        console.print(f"Signed in as [bold]{user.email}[/bold] ({user.method}, since {user.signed_in_at})")


# ----------------------------------------------------------------------
# Planner
# ----------------------------------------------------------------------

@main.command("add-class")
@click.argument("name")
@click.option("--grade", type=click.Choice(GRADES), required=True)
@click.option("--schedule", type=click.Choice(SCHEDULES), required=True)
@click.pass_obj
def add_class(ctx: PlannerContext, name: str, grade: str, schedule: str) -> None:
    """Create a class called NAME."""
    store = require_sign_in(ctx)
    try:
        classroom = store.add_class(name, grade, schedule)
    except PlannerError as e:
        fail(str(e))
    ensure_saved(store)
    console.print(f"[bold green]✅ {store.notice}[/bold green] [dim]{classroom.id}[/dim]")


@main.command("add-student")
@click.argument("class_id")
@click.argument("name")
@click.pass_obj
def add_student(ctx: PlannerContext, class_id: str, name: str) -> None:
    """Add student NAME to class CLASS_ID."""
    store = require_sign_in(ctx)
    try:
        student = store.add_student(class_id, name)
    except PlannerError as e:
        fail(str(e))
    ensure_saved(store)
    console.print(f"[green]✓[/green] Added {student.name} [dim]{student.id}[/dim]")


@main.command("toggle-status")
@click.argument("class_id")
@click.argument("student_id")
@click.argument("status_key")
@click.pass_obj
def toggle_status(ctx: PlannerContext, class_id: str, student_id: str, status_key: str) -> None:
    """Mark or unmark STATUS_KEY on a student (see 'planner catalog')."""
    store = require_sign_in(ctx)
    try:
        student = store.toggle_status(class_id, student_id, status_key)
    except PlannerError as e:
        fail(str(e))
    ensure_saved(store)
    state = "marked" if student.has_status(status_key) else "cleared"
    console.print(f"{status_icon(status_key)} {status_key} {state} for {student.name}")


@main.command()
@click.argument("class_id")
@click.argument("student_id")
@click.argument("status", type=click.Choice(ATTENDANCE_STATUSES))
@click.option("--date", "day", default=None, help="Date as YYYY-MM-DD (defaults to today).")
@click.pass_obj
def attendance(ctx: PlannerContext, class_id: str, student_id: str, status: str, day: t.Optional[str]) -> None:
    """Record STATUS for a student; repeating the same status clears it."""
    store = require_sign_in(ctx)
    day = day or date.today().isoformat()
    try:
        current = store.get_attendance(class_id, student_id, day)
        stored = store.set_attendance(class_id, student_id, day, next_attendance(current, status))
    except PlannerError as e:
        fail(str(e))
    ensure_saved(store)
    label = stored or "unset"
    console.print(f"Attendance on {day}: [{ATTENDANCE_STYLES.get(stored, 'dim')}]{label}[/]")


@main.command()
@click.option("--date", "day", default=None, help="Include attendance for this date (YYYY-MM-DD).")
@click.pass_obj
def show(ctx: PlannerContext, day: t.Optional[str]) -> None:
    """Show every class with its roster."""
    store = require_sign_in(ctx)
    if not store.classes:
        console.print("🏫 No classes found. Add one with 'planner add-class'.")
        return
    try:
        day = parse_iso_date(day).isoformat() if day else None
        for classroom in store.classes:
            console.print(create_roster_table(classroom, day))
    except PlannerError as e:
        fail(str(e))

    stats_text = Text()
    stats_text.append("Total classes: ", style="white")
    stats_text.append(f"{len(store.classes)}", style="bold green")
    stats_text.append("\n")
    stats_text.append("Total students: ", style="white")
    stats_text.append(f"{sum(len(c.students) for c in store.classes)}", style="bold green")
    console.print(Panel(stats_text, title="📊 Statistics", border_style="green"))


@main.command()
def catalog() -> None:
    """List the status tags that can be marked on students."""
    for group in STATUS_GROUPS:
        table = Table(title=group.label, show_header=True, header_style=f"bold {group.color}")
        table.add_column("", width=3)
        table.add_column("Key", style="cyan")
        table.add_column("Label")
        for tag in group.tags:
            table.add_row(tag.icon, tag.key, tag.label)
        console.print(table)


@main.command()
@click.option("--start", default=None, help="First day when building a new calendar (YYYY-MM-DD).")
@click.option("--months", default=6, show_default=True, help="Months covered by a new calendar.")
@click.option("--toggle", "toggle_day", default=None, help="Flip this day between odd and even.")
@click.option("--set-type", nargs=2, default=None, metavar="DATE TYPE",
              help=f"Relabel a day ({', '.join(DAY_TYPES)}).")
@click.option("--rebuild", is_flag=True, help="Discard the saved calendar and build a new one.")
@click.pass_obj
def calendar(
        ctx: PlannerContext,
        start: t.Optional[str],
        months: int,
        toggle_day: t.Optional[str],
        set_type: t.Optional[tuple[str, str]],
        rebuild: bool,
) -> None:
    """Show the odd/even school-day rotation and which classes meet."""
    store = require_sign_in(ctx)
    try:
        school_calendar = None if rebuild else load_calendar(ctx.storage)
        if school_calendar is None:
            school_calendar = build_school_calendar(start or date.today(), months)
        if toggle_day:
            school_calendar = toggle_day_type(school_calendar, toggle_day)
        if set_type:
            school_calendar = update_calendar_day(school_calendar, set_type[0], type=set_type[1])
    except PlannerError as e:
        fail(str(e))
    if not save_calendar(ctx.storage, school_calendar):
        fail("Failed to save calendar")

    table = Table(title="📅 School Calendar", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="yellow")
    table.add_column("Day")
    table.add_column("Classes meeting")
    first = start or date.today().isoformat()
    upcoming = [day for day in sorted(school_calendar) if day >= first][:10]
    for day in upcoming:
        meeting = store.classes_meeting_on(day, school_calendar)
        table.add_row(
            day,
            school_calendar[day].type.upper(),
            ", ".join(c.name for c in meeting) or "—",
        )
    console.print(table)


if __name__ == "__main__":
    main()
