"""CLI commands for Dental Works."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from dental_works.config import get_settings
from dental_works.scheduling.binning import total_bucketed
from dental_works.scheduling.calendar import CalendarViewState
from dental_works.scheduling.errors import StoreError, ValidationError
from dental_works.scheduling.models import DEFAULT_DURATION_MINUTES, DEFAULT_TREATMENT_TYPE
from dental_works.scheduling.store import AppointmentStore, DatabaseAppointmentStore

app = typer.Typer(
    name="dental-works",
    help="Patients and weekly appointment calendar for a dental clinic",
    add_completion=False,
)
console = Console()

T = TypeVar("T")

TOKEN_OPTION = typer.Option(
    None,
    "--token",
    envvar="DENTAL_WORKS_TOKEN",
    help="Session token for a remote API (when API_BASE_URL is set)",
)


def get_store(token: Optional[str] = None) -> AppointmentStore:
    """Remote API store when configured, otherwise the local database."""
    settings = get_settings()
    if settings.has_remote_api:
        if not token:
            console.print("[red]API_BASE_URL is set; pass --token or DENTAL_WORKS_TOKEN[/red]")
            raise typer.Exit(1)
        from dental_works.scheduling.client import HTTPAppointmentStore

        return HTTPAppointmentStore(settings.api_base_url, token)

    from dental_works.core.database import get_session_factory

    return DatabaseAppointmentStore(get_session_factory())


def _run(store: AppointmentStore, work: Callable[[], Awaitable[T]]) -> T:
    """Run *work* on one event loop, preparing the local database if used."""

    async def runner() -> T:
        if not isinstance(store, DatabaseAppointmentStore):
            return await work()

        from dental_works.core.database import get_engine, init_db

        await init_db()
        try:
            return await work()
        finally:
            await get_engine().dispose()

    return asyncio.run(runner())


def _parse_day(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


@app.command()
def week(
    day: Optional[str] = typer.Option(
        None, "--date", "-d", help="Any day of the week to show (YYYY-MM-DD)"
    ),
    token: Optional[str] = TOKEN_OPTION,
):
    """Show the Monday-Sunday appointment calendar."""
    reference = _parse_day(day)
    calendar = CalendarViewState(get_store(token))
    errors: list[str] = []
    calendar.on_error(errors.append)

    async def load() -> None:
        if reference is None:
            await calendar.go_to_today()
        else:
            await calendar.set_week(reference)

    _run(calendar.store, load)

    if errors:
        console.print(f"[red]Could not load appointments: {errors[-1]}[/red]")
        raise typer.Exit(1)
    _display_week(calendar)


def _display_week(calendar: CalendarViewState) -> None:
    interval = calendar.interval
    table = Table(
        title=f"Week {interval.start:%d.%m.%Y} - {interval.end:%d.%m.%Y}",
        show_lines=True,
    )
    table.add_column("Day", style="bold")
    table.add_column("Time")
    table.add_column("Patient")
    table.add_column("Treatment")
    table.add_column("Min", justify="right")
    table.add_column("Status")

    for day, appointments in calendar.buckets.items():
        label = f"{day:%a %d.%m}"
        if not appointments:
            table.add_row(label, "", "[dim]no appointments[/dim]", "", "", "")
            continue
        for i, appt in enumerate(appointments):
            patient = appt.patient.full_name if appt.patient else appt.patient_id
            table.add_row(
                label if i == 0 else "",
                f"{appt.scheduled_date.astimezone(calendar.tz):%H:%M}",
                patient,
                appt.treatment_type or "",
                str(appt.duration),
                appt.status.value,
            )

    console.print(table)
    console.print(f"{total_bucketed(calendar.buckets)} appointment(s)")


@app.command()
def patients(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name, phone or email"),
    token: Optional[str] = TOKEN_OPTION,
):
    """List patients."""
    store = get_store(token)
    query = (search or "").strip()

    async def load():
        if query:
            return await store.search_patients(query)
        return await store.list_patients()

    try:
        rows = _run(store, load)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Patients")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Phone")
    table.add_column("Email")
    for p in rows:
        table.add_row(str(p.id), f"{p.first_name} {p.last_name}", p.phone, p.email or "")
    console.print(table)


@app.command()
def book(
    patient_id: str = typer.Option("", "--patient-id", "-p", help="Patient ID"),
    day: str = typer.Option("", "--date", "-d", help="Appointment date (YYYY-MM-DD)"),
    at: str = typer.Option("09:00", "--time", "-t", help="Start time (HH:MM)"),
    duration: int = typer.Option(DEFAULT_DURATION_MINUTES, "--duration", help="Minutes"),
    treatment_type: str = typer.Option(DEFAULT_TREATMENT_TYPE, "--type", help="Treatment type"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-text notes"),
    token: Optional[str] = TOKEN_OPTION,
):
    """Book an appointment and show the week it lands in."""
    calendar = CalendarViewState(get_store(token))
    form = {
        "patient_id": patient_id,
        "scheduled_date": day,
        "scheduled_time": at,
        "duration": duration,
        "treatment_type": treatment_type,
        "notes": notes,
    }

    async def create():
        appointment = await calendar.create_appointment(form)
        await calendar.set_week(appointment.scheduled_date)
        return appointment

    try:
        appointment = _run(calendar.store, create)
    except ValidationError as e:
        for field, message in sorted(e.errors.items()):
            console.print(f"[red]{field}: {message}[/red]")
        raise typer.Exit(1)
    except StoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    local = appointment.scheduled_date.astimezone(calendar.tz)
    console.print(f"[green]Booked appointment {appointment.id} at {local:%Y-%m-%d %H:%M}[/green]")
    _display_week(calendar)


@app.command("init-db")
def init_db_command():
    """Create the database schema."""
    from dental_works.core.database import get_engine, init_db

    async def run() -> None:
        await init_db()
        await get_engine().dispose()

    asyncio.run(run())
    console.print(f"[green]Database ready at {get_settings().database_url}[/green]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"Starting Dental Works API server on {host}:{port}")
    uvicorn.run(
        "dental_works.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version():
    """Show version information."""
    from dental_works import __version__

    console.print(f"Dental Works v{__version__}")
