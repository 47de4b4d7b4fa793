from pathlib import Path

import pytest


SAMPLE_STORE = """\
projects:
  - id: web
    name: Website relaunch
  - id: ops
    name: Operations
tasks:
  - id: design
    project_id: web
    name: Design mockups
    status: completed
    priority: high
    planned_start_date: 2024-03-01
    planned_end_date: 2024-03-08
    progress: 100
    estimated_hours: 40
    actual_hours: 38
    created_at: 2024-02-20T09:00:00
  - id: build
    project_id: web
    name: Build frontend
    status: in_progress
    priority: critical
    planned_start_date: 2024-03-11
    planned_end_date: 2024-03-29
    actual_start_date: 2024-03-12
    progress: 35
    estimated_hours: 120
    created_at: 2024-02-21T09:00:00
    resources:
      - resource_name: Dana
        role: Frontend developer
        allocation_percentage: 80
        hourly_rate: 65
  - id: content
    project_id: web
    name: Write content
    created_at: 2024-02-22T10:30:00
  - id: audit
    project_id: ops
    name: Security audit
    status: on_hold
    priority: low
    planned_start_date: 2024-03-04
    planned_end_date: 2024-03-06
    created_at: 2024-02-01T08:00:00
dependencies:
  - id: d1
    predecessor_task_id: design
    successor_task_id: build
    dependency_type: finish_to_start
    lag_days: 2
  - id: d2
    predecessor_task_id: audit
    successor_task_id: content
    dependency_type: start_to_start
    lag_days: -1
"""


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Write the sample task store to a temporary YAML file."""
    path = tmp_path / "tasks.yaml"
    path.write_text(SAMPLE_STORE, encoding="utf-8")
    return path
