#!/usr/bin/env python3
"""
signal-trader CLI
Runs the signal generator, the trade executor and the sweep scheduler.
"""

import sys

import click
from tabulate import tabulate

from .config import Settings
from .core.exceptions import ConfigurationError, PersistenceError
from .orchestrator import SignalTraderOrchestrator
from .scheduler import SignalScheduler


def _orchestrator(ctx) -> SignalTraderOrchestrator:
    return SignalTraderOrchestrator(Settings(env_file=ctx.obj['env_file']))


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


@click.group()
@click.option('--env-file', '-e', default='.env', help='Path to the .env file')
@click.pass_context
def cli(ctx, env_file):
    """Moving-average crossover signal trader"""
    ctx.ensure_object(dict)
    ctx.obj['env_file'] = env_file


@cli.command('init-db')
@click.pass_context
def init_db(ctx):
    """Create the equities table"""
    try:
        _orchestrator(ctx).init_db()
    except (ConfigurationError, PersistenceError) as e:
        _fail(str(e))
    click.echo("✅ Database schema ready")


@cli.command()
@click.argument('symbols', nargs=-1)
@click.pass_context
def evaluate(ctx, symbols):
    """Run one signal sweep (all configured symbols, or SYMBOLS)"""
    orchestrator = _orchestrator(ctx)
    try:
        summary = orchestrator.run_sweep([s.upper() for s in symbols] or None)
    except (ConfigurationError, PersistenceError) as e:
        _fail(str(e))
    finally:
        orchestrator.close()

    click.echo(tabulate([list(summary.values())], headers=list(summary.keys()), tablefmt="grid"))


@cli.command()
@click.option('--max-polls', type=int, default=None, help='Stop after this many broker polls')
@click.pass_context
def consume(ctx, max_polls):
    """Run the trade executor"""
    orchestrator = _orchestrator(ctx)
    try:
        consumer = orchestrator.build_signal_consumer()
    except ConfigurationError as e:
        _fail(str(e))

    orchestrator.consumer = consumer
    orchestrator.install_signal_handlers()
    try:
        stats = consumer.run(max_polls=max_polls)
    finally:
        orchestrator.close()

    click.echo(tabulate(sorted(stats.items()), headers=["Counter", "Value"], tablefmt="grid"))


@cli.command()
@click.option('--interval', '-i', type=int, default=None, help='Minutes between sweeps')
@click.pass_context
def schedule(ctx, interval):
    """Run signal sweeps on a timetable"""
    orchestrator = _orchestrator(ctx)
    settings = orchestrator.settings
    try:
        settings.require_signaler()
        orchestrator.init_db()
    except (ConfigurationError, PersistenceError) as e:
        _fail(str(e))

    scheduler = SignalScheduler(
        sweep=orchestrator.run_sweep,
        sweep_time=settings.sweep_time,
        interval_minutes=interval if interval is not None else settings.sweep_interval_minutes,
    )
    click.echo("📅 Scheduler running. Press Ctrl+C to stop.")
    try:
        scheduler.run()
    finally:
        orchestrator.close()


@cli.command()
@click.pass_context
def status(ctx):
    """Show stored signals and configuration"""
    orchestrator = _orchestrator(ctx)
    try:
        equities = orchestrator.store.list_equities()
    except (ConfigurationError, PersistenceError) as e:
        _fail(str(e))
    finally:
        orchestrator.close()

    click.echo("\n⚙️  Configuration")
    click.echo("=" * 50)
    for key, value in orchestrator.settings.get_masked().items():
        click.echo(f"{key}: {value}")

    if not equities:
        click.echo("\n📭 No equities stored")
        return

    click.echo(f"\n📈 Equities ({len(equities)})")
    rows = [
        [e.symbol, e.signal.value.upper(), e.updated_at.strftime("%Y-%m-%d %H:%M:%S") if e.updated_at else "-"]
        for e in equities
    ]
    click.echo(tabulate(rows, headers=["Symbol", "Signal", "Updated"], tablefmt="grid"))


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
