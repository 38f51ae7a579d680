"""
Tests for the public map refresh DAG.

Skipped when Airflow is not installed.
"""
from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("airflow")


class TestPublicMapRefreshDAG:
    """Tests for DAG structure and callables."""

    def test_dag_imports(self):
        from dags import public_map_refresh

        assert hasattr(public_map_refresh, 'dag')

    def test_dag_config(self):
        from dags.public_map_refresh import dag

        assert dag.dag_id == 'public_map_refresh'
        assert dag.catchup is False
        assert dag.max_active_runs == 1
        assert 'snapshot' in dag.tags
        assert dag.default_args['retries'] == 0

    def test_task_order(self):
        from dags.public_map_refresh import dag

        refresh = dag.get_task('refresh_public_map')
        report = dag.get_task('report_refresh_outcome')

        assert report.task_id in refresh.downstream_task_ids

    @patch('dags.public_map_refresh.build_refresh_task')
    def test_refresh_pushes_observation(self, mock_build):
        from dags.public_map_refresh import refresh_public_map
        from src.publicmap.services.refresh_task import FAILED, RefreshObservation
        from datetime import datetime, timezone

        observation = RefreshObservation(
            trigger='scheduled',
            status=FAILED,
            started_at=datetime(2026, 3, 1, 3, tzinfo=timezone.utc),
            error='boom',
        )
        mock_build.return_value.run.return_value = observation
        ti = MagicMock()

        status = refresh_public_map(task_instance=ti)

        assert status == FAILED
        mock_build.return_value.run.assert_called_once_with(trigger='scheduled')
        pushed = ti.xcom_push.call_args.kwargs['value']
        assert pushed['status'] == 'failed'
        assert pushed['error'] == 'boom'
        assert pushed['rows_written'] is None

    def test_report_outcome_reads_xcom(self):
        from dags.public_map_refresh import report_refresh_outcome

        ti = MagicMock()
        ti.xcom_pull.return_value = {'status': 'completed', 'rows_written': '3'}

        assert report_refresh_outcome(task_instance=ti) == 'completed'
