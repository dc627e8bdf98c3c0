# manage.py

from dotenv import load_dotenv
load_dotenv()

import asyncio
import typer
import uvicorn
from typing import Optional
from typing_extensions import Annotated

# NOTE: Command CLI untuk project FastAPI, pakai Typer.

cli = typer.Typer(
    help="Manajemen CLI untuk POS Sync."
)

# --- Database Commands ---

@cli.command()
def init_db():
    """
    Inisialisasi database dan membuat semua tabel.
    """
    from possync.database import init_models

    async def create_tables():
        typer.echo("Membuat semua tabel sesuai models...")
        await init_models()
        typer.secho("✅ Database berhasil diinisialisasi.", fg=typer.colors.GREEN)

    asyncio.run(create_tables())

# --- Company Commands ---

@cli.command()
def create_company(
    code: Annotated[str, typer.Argument(help="Kode company (unik).")],
    name: Annotated[str, typer.Argument(help="Nama company.")],
    api_url: Annotated[str, typer.Option(help="URL POS API.")],
    api_token: Annotated[str, typer.Option(help="Token POS API.")],
    erp_api_token: Annotated[Optional[str], typer.Option(help="Token yang dipakai ERP.")] = None,
    sync_type: Annotated[str, typer.Option(help="INTERVAL, DAILY atau WEEKLY.")] = "DAILY",
    interval: Annotated[Optional[int], typer.Option(help="Menit, untuk INTERVAL.")] = None,
    hour: Annotated[int, typer.Option(help="Jam sync, untuk DAILY/WEEKLY.")] = 1,
    minute: Annotated[int, typer.Option(help="Menit sync, untuk DAILY/WEEKLY.")] = 0,
    day: Annotated[Optional[int], typer.Option(help="Hari (0=Minggu), untuk WEEKLY.")] = None,
):
    """
    Registrasi company baru beserta jadwal sync-nya.
    """
    from possync.database import AsyncSessionLocal
    from possync.services.company_service import CompanyService
    from possync.services.exceptions import PosSyncException
    from pydantic import ValidationError as SchemaValidationError

    data = {
        'code': code,
        'name': name,
        'api_url': api_url,
        'api_token': api_token,
        'erp_api_token': erp_api_token,
        'sync_type': sync_type.upper(),
        'sync_interval_minutes': interval,
        'daily_sync_hour': hour,
        'daily_sync_minute': minute,
        'weekly_sync_day': day,
        'weekly_sync_hour': hour,
        'weekly_sync_minute': minute,
    }

    async def add_company():
        async with AsyncSessionLocal() as session:
            company = await CompanyService(session).create(data)
            typer.secho(f"✅ Company '{company['code']}' (id={company['id']}) berhasil dibuat!", fg=typer.colors.GREEN)

    try:
        asyncio.run(add_company())
    except (PosSyncException, SchemaValidationError) as e:
        typer.secho(f"🔥 Gagal membuat company: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

# --- Sync Commands ---

@cli.command()
def sync(
    code: Annotated[str, typer.Argument(help="Kode company.")],
    start_date: Annotated[str, typer.Argument(help="YYYY-MM-DD atau 'YYYY-MM-DD HH:MM:SS'.")],
    end_date: Annotated[str, typer.Argument(help="YYYY-MM-DD atau 'YYYY-MM-DD HH:MM:SS'.")],
):
    """
    Jalankan satu sync manual untuk company.
    """
    from sqlalchemy import select
    from possync.config import settings, setup_logging
    from possync.database import AsyncSessionLocal
    from possync.models import Company
    from possync.services import create_service_registry
    from possync.services.exceptions import PosSyncException

    setup_logging()

    async def run_sync():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Company).filter(Company.code == code.upper()))
            company = result.scalars().first()
            if company is None:
                typer.secho(f"🔥 Company '{code}' tidak ditemukan", fg=typer.colors.RED)
                raise typer.Exit(code=1)

            services = create_service_registry(session, settings.model_dump(), current_user='cli')
            return await services.sync_service.run_sync(company.id, start_date, end_date)

    try:
        result = asyncio.run(run_sync())
    except PosSyncException as e:
        typer.secho(f"🔥 Sync gagal: {e.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho(
        f"✅ Batch {result.batch_id}: {result.total_records} orders, new={result.new_records} "
        f"updated={result.updated_records} unchanged={result.unchanged_records} ({result.duration} ms)",
        fg=typer.colors.GREEN
    )

@cli.command()
def scheduler(
    once: Annotated[bool, typer.Option(help="Jalankan satu tick lalu keluar.")] = False,
):
    """
    Menjalankan scheduler sync tanpa HTTP server.
    """
    from possync.config import setup_logging
    from possync.database import init_models
    from possync.workers import SyncScheduler

    setup_logging()

    async def run_scheduler():
        await init_models()
        worker = SyncScheduler()
        if once:
            dispatched = await worker.check_and_sync()
            await worker.wait_idle()
            typer.echo(f"Dispatched {len(dispatched)} sync(s)")
            return

        worker.start()
        try:
            await asyncio.Event().wait()
        finally:
            await worker.stop()

    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        typer.echo("⛔ Scheduler dihentikan.")

# --- Server Commands ---

@cli.command()
def run(
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = True
):
    """
    Menjalankan development server Uvicorn.
    """
    typer.echo(f"🚀 Menjalankan server di http://{host}:{port}")
    uvicorn.run("main:app", host=host, port=port, reload=reload, factory=True)


if __name__ == "__main__":
    cli()
