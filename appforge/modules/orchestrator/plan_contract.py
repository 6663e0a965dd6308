"""
Plan Contract - the file manifest a build commits to producing.

The plan's file_tree is the authoritative completion contract for a run:
`complete` is accepted only when every declared path has a created/updated
File Record. Paths outside the plan may be written freely; they are tracked
but never gate completion.
"""

from typing import Dict, Any, List, Optional, Tuple
from enum import Enum
from dataclasses import dataclass, field

from appforge.core.exceptions import PlanAlreadySetError
from appforge.modules.tools.schemas import CreatePlanInput, normalize_path
from appforge.utils.language import get_language_from_path


class FileStatus(str, Enum):
    PENDING = "pending"
    CREATED = "created"
    UPDATED = "updated"
    ERROR = "error"


WRITTEN_STATUSES = (FileStatus.CREATED, FileStatus.UPDATED)


@dataclass(frozen=True)
class Plan:
    """Immutable build plan"""
    app_name: str
    app_type: str
    file_tree: Tuple[str, ...]
    features: Tuple[str, ...] = ()
    screens: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    plan_steps: Tuple[str, ...] = ()

    @classmethod
    def from_input(cls, params: CreatePlanInput) -> "Plan":
        return cls(
            app_name=params.app_name,
            app_type=params.app_type,
            file_tree=tuple(params.file_tree),
            features=tuple(params.features),
            screens=tuple(params.screens),
            dependencies=tuple(params.dependencies),
            plan_steps=tuple(params.plan_steps),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        """Inverse of to_dict, used when folding plan_created events"""
        return cls(
            app_name=data.get("appName", ""),
            app_type=data.get("appType", ""),
            file_tree=tuple(data.get("fileTree") or ()),
            features=tuple(data.get("features") or ()),
            screens=tuple(data.get("screens") or ()),
            dependencies=tuple(data.get("dependencies") or ()),
            plan_steps=tuple(data.get("planSteps") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appName": self.app_name,
            "appType": self.app_type,
            "features": list(self.features),
            "screens": list(self.screens),
            "fileTree": list(self.file_tree),
            "dependencies": list(self.dependencies),
            "planSteps": list(self.plan_steps),
        }


@dataclass
class FileRecord:
    path: str
    content: str = ""
    language: str = "plaintext"
    status: FileStatus = FileStatus.PENDING

    @property
    def written(self) -> bool:
        return self.status in WRITTEN_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.content,
            "language": self.language,
            "status": self.status.value,
        }


class PlanContract:
    """
    Run-scoped file bookkeeping against the plan.

    Owned by one orchestrator run; the pending set is recomputed from the
    records on every query so it is always consistent with the last write.
    """

    def __init__(self, existing_files: Optional[Dict[str, str]] = None):
        self.plan: Optional[Plan] = None
        self.files: Dict[str, FileRecord] = {}
        self.written_this_run: List[str] = []

        for raw_path, content in (existing_files or {}).items():
            path = normalize_path(raw_path)
            self.files[path] = FileRecord(
                path=path,
                content=content,
                language=get_language_from_path(path),
                status=FileStatus.CREATED,
            )

    @property
    def has_plan(self) -> bool:
        return self.plan is not None

    def set_plan(self, plan: Plan) -> None:
        """Establish the plan; only the first plan of a run is accepted"""
        if self.plan is not None:
            raise PlanAlreadySetError(self.plan.app_name, self.pending_paths())

        self.plan = plan
        for path in plan.file_tree:
            record = self.files.get(path)
            if record is None:
                self.files[path] = FileRecord(
                    path=path,
                    language=get_language_from_path(path),
                )
            else:
                # Planned paths must be produced in this run, existing content is kept
                record.status = FileStatus.PENDING

    def pending_paths(self) -> List[str]:
        """Planned paths without a successful write, in plan order"""
        if self.plan is None:
            return []
        return [
            path for path in self.plan.file_tree
            if path not in self.files or not self.files[path].written
        ]

    def is_planned(self, path: str) -> bool:
        return self.plan is not None and path in self.plan.file_tree

    def is_satisfied(self) -> bool:
        return self.plan is not None and not self.pending_paths()

    def record_write(self, path: str, content: str) -> bool:
        """
        Record a successful write/patch.

        Returns:
            True if the path had no content before (file_created),
            False if it replaced existing content (file_updated).
        """
        record = self.files.get(path)
        is_new = record is None or not record.content
        if record is None:
            record = FileRecord(path=path, language=get_language_from_path(path))
            self.files[path] = record

        record.content = content
        record.status = FileStatus.CREATED if is_new else FileStatus.UPDATED

        if path not in self.written_this_run:
            self.written_this_run.append(path)
        return is_new

    def record_failure(self, path: str) -> None:
        """A failed write/patch on a never-written planned path marks it error"""
        record = self.files.get(path)
        if record is not None and record.status == FileStatus.PENDING and self.is_planned(path):
            record.status = FileStatus.ERROR

    def record_delete(self, path: str) -> None:
        self.files.pop(path, None)
        if path in self.written_this_run:
            self.written_this_run.remove(path)
        if self.is_planned(path):
            self.files[path] = FileRecord(path=path, language=get_language_from_path(path))

    def completed_count(self) -> int:
        if self.plan is None:
            return 0
        return len(self.plan.file_tree) - len(self.pending_paths())

    def progress(self, current_file: str) -> Dict[str, Any]:
        return {
            "currentFile": current_file,
            "completedFiles": self.completed_count(),
            "totalFiles": len(self.plan.file_tree) if self.plan else 0,
        }

    def written_files(self) -> List[FileRecord]:
        """Every file with content, in insertion order"""
        return [record for record in self.files.values() if record.written or record.content]
