"""Backup coordination module.

Stops the VM and takes an on-demand Recovery Services vault backup before
anything destructive happens.

Only the backup job's 'Take Snapshot' task is awaited. Once the snapshot
exists the backup is recoverable; transferring it into the vault can take
hours and does not need to block the migration.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from azmove.az_client import AzureControlPlane
from azmove.errors import MissingJobIdError, OperationTimeoutError, RemoteOperationError
from azmove.models import BackupJob, BackupJobStatus, MigrationRequest
from azmove.poll_config import PollConfig, get_poll_config
from azmove.polling import poll_until

logger = logging.getLogger(__name__)


class BackupCoordinator:
    """Stop a VM and secure an on-demand vault backup of it."""

    DEALLOCATED_STATE = "PowerState/deallocated"
    SNAPSHOT_TASK_ID = "Take Snapshot"
    TASK_COMPLETED = "Completed"
    FAILED_STATES = {"Failed", "Cancelled"}
    JOB_DONE_STATES = {"Completed", "CompletedWithWarnings"}
    DEFAULT_RETENTION_DAYS = 7
    RETAIN_UNTIL_FORMAT = "%d-%m-%Y"

    def __init__(
        self,
        client: AzureControlPlane,
        poll_config: PollConfig | None = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self.client = client
        self.poll_config = poll_config or get_poll_config()
        self.retention_days = retention_days

    def run_backup(self, request: MigrationRequest) -> BackupJob:
        """Deallocate the VM, submit a backup and wait for its snapshot task.

        Args:
            request: Migration parameters

        Returns:
            BackupJob whose snapshot task has completed

        Raises:
            RemoteOperationError: If stopping, submitting or the job fails
            MissingJobIdError: If the submission response has no job id
            OperationTimeoutError: If a wait exceeds its deadline
        """
        self.stop_vm(request)

        retain_until = self.retain_until()
        logger.info(
            f"Starting on-demand backup of VM {request.vm_name} in vault {request.vault_name}"
        )
        try:
            response = self.client.backup_now(
                request.resource_group, request.vault_name, request.vm_name, retain_until
            )
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap("Failed to start on-demand backup", e) from e

        job_id = self.extract_job_id(response)
        logger.info(f"On-demand backup requested. Job ID: {job_id} (retained until {retain_until})")

        job = self.wait_for_snapshot_task(job_id, request)
        logger.info("Backup snapshot completed; vault transfer continues in the background")
        return job

    def stop_vm(self, request: MigrationRequest) -> None:
        """Deallocate the VM and wait until Azure reports it deallocated."""
        logger.info(f"Stopping VM {request.vm_name}...")
        try:
            self.client.deallocate_vm(request.resource_group, request.vm_name)
        except RemoteOperationError as e:
            raise RemoteOperationError.wrap(f"Failed to stop VM {request.vm_name}", e) from e

        try:
            poll_until(
                lambda: self.client.get_power_state(request.resource_group, request.vm_name)
                == self.DEALLOCATED_STATE,
                description=f"VM {request.vm_name} to be deallocated",
                timeout=self.poll_config.deallocate_timeout,
                config=self.poll_config,
            )
        except OperationTimeoutError as e:
            raise OperationTimeoutError(
                f"VM {request.vm_name} was not fully stopped: {e.message}",
                waited_seconds=e.waited_seconds,
            ) from e

        logger.info(f"VM {request.vm_name} stopped successfully")

    def retain_until(self, now: datetime | None = None) -> str:
        """Retention date for the on-demand backup, formatted dd-mm-YYYY."""
        now = now or datetime.now()
        return (now + timedelta(days=self.retention_days)).strftime(self.RETAIN_UNTIL_FORMAT)

    @staticmethod
    def extract_job_id(response: Any) -> str:
        """Read the backup job id from a backup-now response.

        The job resource carries its id in `name`; older responses only
        expose it as the segment after `backupJobs` in the resource `id`.

        Raises:
            MissingJobIdError: If neither field yields an id
        """
        if not isinstance(response, dict):
            raise MissingJobIdError("Failed to capture the backup job ID: unexpected response")

        name = response.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()

        resource_id = response.get("id")
        if isinstance(resource_id, str):
            segments = [segment for segment in resource_id.split("/") if segment]
            for index, segment in enumerate(segments[:-1]):
                if segment.lower() == "backupjobs":
                    return segments[index + 1]

        raise MissingJobIdError("Failed to capture the backup job ID from the backup response")

    @classmethod
    def snapshot_task_status(cls, job: dict[str, Any]) -> str | None:
        """Status of the job's 'Take Snapshot' task, if listed."""
        extended_info = (job.get("properties") or {}).get("extendedInfo") or {}
        for task in extended_info.get("tasksList") or []:
            if task.get("taskId") == cls.SNAPSHOT_TASK_ID:
                return task.get("status")
        return None

    def wait_for_snapshot_task(self, job_id: str, request: MigrationRequest) -> BackupJob:
        """Poll the backup job until its 'Take Snapshot' task completes."""
        logger.info(f"Waiting for the '{self.SNAPSHOT_TASK_ID}' step of job {job_id}...")
        backup_job = BackupJob(job_id=job_id)

        def check() -> bool:
            job = self.client.show_backup_job(request.resource_group, request.vault_name, job_id)
            job_status = (job.get("properties") or {}).get("status")
            task_status = self.snapshot_task_status(job)
            backup_job.snapshot_task_status = task_status

            if task_status in self.FAILED_STATES or job_status in self.FAILED_STATES:
                backup_job.status = BackupJobStatus.FAILED
                raise RemoteOperationError(
                    f"Backup job {job_id} failed (job: {job_status}, snapshot task: {task_status})"
                )

            if job_status in self.JOB_DONE_STATES:
                backup_job.status = BackupJobStatus.COMPLETED
                return True

            if task_status == self.TASK_COMPLETED:
                return True

            logger.debug(f"'{self.SNAPSHOT_TASK_ID}' step still in progress ({task_status})")
            return False

        poll_until(
            check,
            description=f"'{self.SNAPSHOT_TASK_ID}' step of backup job {job_id}",
            timeout=self.poll_config.backup_snapshot_timeout,
            config=self.poll_config,
        )
        logger.info(f"The '{self.SNAPSHOT_TASK_ID}' step has been completed")
        return backup_job


__all__ = ["BackupCoordinator"]
