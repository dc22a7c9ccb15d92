import pytest

from course_batch_toolkit.core.services.batch_service import BatchEditService
from course_batch_toolkit.core.services.progress_service import ProgressService


@pytest.fixture
def recorded_stages():
    return []


@pytest.fixture
def service(recorded_stages):
    """BatchEditService whose progress callback records (stage, percent) pairs."""
    progress = ProgressService(lambda stage, percent: recorded_stages.append((stage, percent)))
    return BatchEditService(progress=progress)


@pytest.fixture
def video_page(builder):
    """Page whose sections are [intro HTML, lone video, expandable credits]."""
    builder.page_with_leaves(1, [
        {"id": 10, "type": "INVISIBLE_CONTAINER", "elements": [(100, "HTML")]},
        {"id": 11, "type": "INVISIBLE_CONTAINER", "elements": [(110, "CDA_VIDEO")]},
        {"id": 12, "type": "EXPAND_CONTAINER", "elements": [(120, "HTML")]},
    ])
    return builder
