"""
Prefect Workflow Orchestration - Onboarding Maintenance

Scheduled maintenance for the onboarding core:
- Expiry sweep of ACTIVE sessions past their TTL
- Batch migration of legacy hotel records with a completeness check
"""

from typing import Optional

from prefect import flow, task, get_run_logger

from hotel_onboarding.config import get_settings
from hotel_onboarding.services import onboarding_services

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="sweep_expired_sessions",
    description="Abandon ACTIVE onboarding sessions past their expiry",
    retries=3,
    retry_delay_seconds=30,
)
async def sweep_expired_sessions() -> int:
    """Run one expiry sweep"""
    logger = get_run_logger()

    async with onboarding_services() as services:
        abandoned = await services.sessions.sweep_expired()

    logger.info(f"Expiry sweep complete: {abandoned} sessions abandoned")
    return abandoned


@task(
    name="migrate_legacy_hotels",
    description="Migrate every legacy hotel without an enhanced aggregate",
    retries=2,
    retry_delay_seconds=60,
)
async def migrate_legacy_hotels() -> dict:
    """Migrate legacy hotels; already migrated ones are skipped"""
    logger = get_run_logger()

    async with onboarding_services() as services:
        summary = await services.integration.migrate_all_legacy_hotels()

    logger.info(
        f"Legacy migration: {summary['migrated']} migrated, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return summary


@task(
    name="verify_data_migration",
    description="Compare legacy hotels against migrated aggregates",
    retries=2,
    retry_delay_seconds=30,
)
async def verify_data_migration() -> dict:
    async with onboarding_services() as services:
        return await services.integration.verify_data_migration()


@task(
    name="send_alert",
    description="Send alert notification",
)
async def send_alert(
    alert_type: str,
    message: str,
    severity: str = "info",
) -> None:
    """Send alert notification"""
    logger = get_run_logger()
    logger.warning(f"[{severity.upper()}] {alert_type}: {message}")


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="sweep_expired_sessions",
    description="Periodic expiry sweep of onboarding sessions",
)
async def sweep_expired_sessions_flow() -> dict:
    abandoned = await sweep_expired_sessions()
    return {"abandoned": abandoned, "status": "success"}


@flow(
    name="migrate_legacy_hotels",
    description="Batch migration of legacy hotel records",
    retries=1,
    retry_delay_seconds=300,
)
async def migrate_legacy_hotels_flow(verify: bool = True) -> dict:
    """
    Legacy hotel migration.

    Steps:
    1. Migrate every legacy hotel not yet migrated
    2. Verify that no legacy hotel is missing an aggregate
    3. Alert on failures or gaps
    """
    logger = get_run_logger()

    results = {"steps": {}}
    summary = await migrate_legacy_hotels()
    results["steps"]["migrate"] = summary

    if summary["failed"]:
        await send_alert(
            alert_type="Legacy Migration Failures",
            message=f"{summary['failed']} legacy hotels failed to migrate",
            severity="critical",
        )

    verification: Optional[dict] = None
    if verify:
        verification = await verify_data_migration()
        results["steps"]["verify"] = verification
        if not verification["isComplete"]:
            await send_alert(
                alert_type="Legacy Migration Incomplete",
                message=f"{len(verification['missing'])} legacy hotels have no aggregate",
                severity="warning",
            )

    results["status"] = "success" if not summary["failed"] else "partial"
    logger.info(f"Legacy migration flow finished with status {results['status']}")
    return results


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    # Long-running deployment of the sweep on the configured interval
    sweep_expired_sessions_flow.serve(
        name="onboarding-session-sweep",
        interval=settings.onboarding.sweep_interval_seconds,
    )
