"""
Airflow DAGs Package

Contains the DAG definitions for the public map pipeline.

DAGs:
- public_map_refresh: Rebuild the daily public map snapshot (3:00 AM)
"""
