"""
Public Map Snapshot Refresh DAG

Rebuilds today's public map snapshot on a fixed schedule.

The refresh is fire-and-forget: failures are logged and recorded in the
refresh observation, and the next scheduled run retries naturally.

Schedule: settings.refresh_schedule (default daily at 3:00 AM)
"""
from datetime import datetime, timedelta
from airflow import DAG
from airflow.operators.python import PythonOperator

from config.settings import settings
from src.publicmap.db import SessionLocal
from src.publicmap.services.refresh_task import RefreshTask
from src.publicmap.services.snapshot_builder import SnapshotBuilder
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

# DAG default arguments
default_args = {
    'owner': 'publicmap',
    'depends_on_past': False,
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 0,  # next scheduled run is the retry
    'execution_timeout': timedelta(minutes=30),
}


def build_refresh_task() -> RefreshTask:
    return RefreshTask(SnapshotBuilder(SessionLocal))


def refresh_public_map(**context):
    """
    Rebuild the snapshot and push the observation to XCom.

    Never raises; a failed refresh is reported through the observation.
    """
    task = build_refresh_task()
    observation = task.run(trigger="scheduled")
    payload = observation.to_dict()
    context['task_instance'].xcom_push(key='refresh_observation', value={
        key: str(value) if value is not None else None for key, value in payload.items()
    })
    return observation.status


def report_refresh_outcome(**context):
    """Log the refresh outcome for monitoring."""
    ti = context['task_instance']
    observation = ti.xcom_pull(task_ids='refresh_public_map', key='refresh_observation') or {}
    if observation.get('status') == 'failed':
        logger.error("scheduled_refresh_outcome", **observation)
    else:
        logger.info("scheduled_refresh_outcome", **observation)
    return observation.get('status')


with DAG(
    'public_map_refresh',
    default_args=default_args,
    description='Rebuild the daily public map snapshot',
    schedule=settings.refresh_schedule,
    start_date=datetime(2026, 1, 1),
    catchup=False,
    max_active_runs=1,
    tags=['snapshot', 'public-map'],
) as dag:

    refresh_task = PythonOperator(
        task_id='refresh_public_map',
        python_callable=refresh_public_map,
    )

    report_task = PythonOperator(
        task_id='report_refresh_outcome',
        python_callable=report_refresh_outcome,
    )

    refresh_task >> report_task
