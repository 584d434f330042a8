"""Flask CLI commands for Recouvrement."""

from __future__ import annotations

import click


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("recouvrement-init-db")
    def recouvrement_init_db() -> None:
        """Create any missing tables."""

        from .extensions import get_engine
        from .infra.database import init_database

        init_database(get_engine())
        click.echo("Database schema is up to date.")

    @app.cli.command("recouvrement-stats")
    @click.option("--case", "case_id", default=None, help="Restrict payment totals to one case id")
    def recouvrement_stats(case_id: str | None) -> None:
        """Print portfolio and payment statistics."""

        from .extensions import session_scope
        from .services.cases import case_statistics
        from .services.payments import payment_statistics

        with session_scope() as session:
            cases = case_statistics(session)
            payments = payment_statistics(session, case_id=case_id)

        click.echo(
            f"Cases: {cases.total_cases} ({cases.in_progress} in progress, {cases.closed} closed)"
        )
        click.echo(f"To recover: {cases.total_to_recover}  recovered: {cases.total_recovered}")
        click.echo(f"Remaining: {cases.remaining_balance}  rate: {cases.recovery_rate}%")
        click.echo(f"Payments: {payments.payment_count} totalling {payments.total_amount}")
        for row in payments.by_mode:
            click.echo(f"  {row.mode.value:<13} {row.count:>4}  {row.amount}")
