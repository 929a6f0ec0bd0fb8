"""
Public import API surface.

External callers (CLI, services, tests) should import from here rather than
reaching into submodules directly.

The import subsystem includes:
    • import_export / import_document - orchestrator entry points
    • import_batch / validate_batch   - multi-file controller
    • extract_resource(s)             - attachment extraction
    • job queries                     - status, listing, progress percent
"""

from .batch import UploadedFile, import_batch, import_file, validate_batch
from .orchestrator import (
    ImportOptions,
    ImportProgress,
    get_import_job_status,
    import_document,
    import_export,
    job_progress_percent,
    list_import_jobs,
)
from .resource_extraction import (
    calculate_md5_hash,
    calculate_total_resource_size,
    extract_resource,
    extract_resources,
    find_existing_resource,
)

__all__ = [
    "ImportOptions",
    "ImportProgress",
    "UploadedFile",
    "import_export",
    "import_document",
    "import_file",
    "import_batch",
    "validate_batch",
    "get_import_job_status",
    "list_import_jobs",
    "job_progress_percent",
    "extract_resource",
    "extract_resources",
    "find_existing_resource",
    "calculate_md5_hash",
    "calculate_total_resource_size",
]
