"""Periodic and on-demand scan passes over the registered projects."""

import logging
import threading

from devtrack.ai.analyzer import DailyWorkAnalyzer
from devtrack.database.models import (
    CachedGitTag,
    DailyLog,
    DiffResult,
    Milestone,
    Project,
    ProjectStatus,
    new_id,
    utc_now,
)
from devtrack.database.store import Store
from devtrack.errors import (
    AiCollaboratorError,
    DevtrackError,
    DuplicateKeyError,
    SchedulerError,
    ScannerError,
    StoreError,
)
from devtrack.scanner.scanner import GitScanner
from devtrack.scheduler.events import (
    SCAN_COMPLETE,
    SCAN_STARTED,
    STARTUP_SCAN_COMPLETE,
    STARTUP_SCAN_STARTED,
    TAGS_SYNCED,
    LoggingNotifier,
    Notifier,
    emit_safely,
)
from devtrack.scheduler.report import ScanReport, SchedulerStatus, TagSyncResult, format_duration
from devtrack.scheduler.state import ScanState
from devtrack.settings import ScanSettings, UserSettings

logger = logging.getLogger(__name__)


class ScanScheduler:
    """Runs scan passes over active projects, on demand or on a fixed interval.

    A pass never aborts because one project failed: per-project scanner, AI
    and write failures are logged and recorded in the pass's ScanReport. Only
    a failure to read the project list or the settings aborts a pass, as a
    SchedulerError.
    """

    def __init__(
        self,
        store: Store,
        scanner: GitScanner,
        analyzer: DailyWorkAnalyzer | None = None,
        notifier: Notifier | None = None,
        state: ScanState | None = None,
    ):
        self.store = store
        self.scanner = scanner
        self.analyzer = analyzer
        self.notifier = notifier or LoggingNotifier()
        self.state = state or ScanState()
        self._loop_lock = threading.Lock()
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    # ---- lifecycle ----

    def start(self, settings: ScanSettings, interval_seconds: float | None = None) -> bool:
        """Start the periodic loop. Returns False if disabled or already running.

        interval_seconds overrides settings.interval_minutes when given. The
        first scheduled pass runs right away, then once per interval.
        """
        if not settings.enabled:
            logger.info("Scheduled scanning is disabled")
            return False

        if not self.state.try_start():
            logger.warning("Scheduler is already running")
            return False

        interval = interval_seconds if interval_seconds is not None else settings.interval_minutes * 60
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run_loop,
            args=(interval, stop_event),
            name="devtrack-scheduler",
            daemon=True,
        )
        with self._loop_lock:
            self._stop_event = stop_event
            self._thread = thread
        thread.start()

        logger.info("Scheduler started, scanning every %s", format_duration(interval))
        return True

    def stop(self) -> None:
        """Request the loop to stop. A pass already running finishes normally."""
        was_started = self.state.request_stop()
        with self._loop_lock:
            stop_event = self._stop_event
        if stop_event is not None:
            stop_event.set()
        if was_started:
            logger.info("Scheduler stop requested")

    def join(self, timeout: float | None = None) -> None:
        """Wait for the loop thread to exit."""
        with self._loop_lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            is_running=self.state.started,
            is_scanning=self.state.scanning,
            last_scan=self.state.last_scan,
        )

    @property
    def is_running(self) -> bool:
        return self.state.started

    @property
    def last_scan_time(self):
        return self.state.last_scan

    def _run_loop(self, interval: float, stop_event: threading.Event) -> None:
        while True:
            if stop_event.is_set() or not self.state.started:
                break

            logger.info("Running scheduled scan")
            try:
                report = self.run_scheduled_scan()
            except DevtrackError as e:
                logger.error("Scheduled scan failed: %s", e)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unexpected error in scheduled scan")
            else:
                logger.info(
                    "Scheduled scan finished in %s: %d projects, %d with changes",
                    format_duration(report.elapsed_seconds),
                    report.projects_scanned,
                    report.projects_with_changes,
                )

            if stop_event.wait(interval):
                break

        logger.info("Scheduler loop exited")

    # ---- passes ----

    def run_startup_scan(self) -> ScanReport:
        """Diff every active project without AI work, then sync tags if enabled."""
        report = ScanReport(kind="startup")
        finished_at = None
        self.state.begin_pass()
        try:
            emit_safely(self.notifier, STARTUP_SCAN_STARTED)
            settings = self._load_settings()
            projects = self._active_projects()

            for project in projects:
                self._scan_project(project, report)

            logger.info(
                "Startup scan: %d projects scanned, %d with changes",
                report.projects_scanned,
                report.projects_with_changes,
            )

            if settings.version.auto_refresh:
                self._sync_all_tags(projects, settings.version.auto_milestones_from_tags, report)
                emit_safely(
                    self.notifier,
                    TAGS_SYNCED,
                    {
                        "tags_synced": report.tags_synced,
                        "milestones_created": report.milestones_created,
                    },
                )

            finished_at = utc_now()
            report.finished_at = finished_at
            emit_safely(self.notifier, STARTUP_SCAN_COMPLETE, report.event_payload())
        finally:
            self.state.end_pass(finished_at)

        return report

    def run_scheduled_scan(self) -> ScanReport:
        return self._run_full_pass("scheduled")

    def run_manual_scan(self) -> ScanReport:
        return self._run_full_pass("manual")

    def _run_full_pass(self, kind: str) -> ScanReport:
        report = ScanReport(kind=kind)
        finished_at = None
        self.state.begin_pass()
        try:
            emit_safely(self.notifier, SCAN_STARTED, {"kind": kind})
            settings = self._load_settings()
            projects = self._active_projects()

            for project in projects:
                diff = self._scan_project(project, report)
                if diff is None or diff.is_empty:
                    continue
                try:
                    self._record_work(project, diff, settings, report)
                except AiCollaboratorError as e:
                    logger.error("AI analysis failed for %s: %s", project.name, e)
                    report.failures[project.id] = f"AI analysis failed: {e}"

            if settings.version.auto_refresh:
                self._sync_all_tags(projects, settings.version.auto_milestones_from_tags, report)
                if report.tags_synced > 0:
                    emit_safely(
                        self.notifier,
                        TAGS_SYNCED,
                        {
                            "tags_synced": report.tags_synced,
                            "milestones_created": report.milestones_created,
                        },
                    )

            finished_at = utc_now()
            report.finished_at = finished_at
            emit_safely(self.notifier, SCAN_COMPLETE, report.event_payload())
        finally:
            self.state.end_pass(finished_at)

        return report

    def _scan_project(self, project: Project, report: ScanReport) -> DiffResult | None:
        if not self.scanner.is_repository(project.path):
            logger.warning("Project %s is not a git repository: %s", project.name, project.path)
            report.failures[project.id] = "not a git repository"
            return None

        try:
            diff = self.scanner.today_diff(project.path)
        except ScannerError as e:
            logger.error("Failed to scan project %s: %s", project.name, e)
            report.failures[project.id] = str(e)
            return None

        diff.project_id = project.id
        report.projects_scanned += 1
        report.diffs[project.id] = diff
        if not diff.is_empty:
            report.projects_with_changes += 1
        return diff

    def _record_work(
        self, project: Project, diff: DiffResult, settings: UserSettings, report: ScanReport
    ) -> None:
        scan = settings.scan
        if not (scan.auto_classify or scan.auto_summarize):
            return
        if self.analyzer is None:
            logger.debug("No AI collaborator configured, skipping analysis of %s", project.name)
            return

        analysis = self.analyzer.analyze_daily_work(project, diff)

        inbox_item = self.analyzer.create_daily_summary_inbox(project, analysis)
        try:
            self.store.create_inbox_item(inbox_item)
            report.inbox_items_created += 1
        except StoreError as e:
            logger.error("Failed to create inbox item for %s: %s", project.name, e)

        if not scan.auto_summarize:
            return

        log = DailyLog(
            id=new_id(),
            project_id=project.id,
            date=diff.date,
            summary=analysis.summary,
            category=analysis.category,
            files_changed=list(diff.files),
            ai_classification=analysis.raw_category,
        )
        try:
            self.store.create_daily_log(log)
            report.daily_logs_written += 1
        except DuplicateKeyError:
            logger.debug("Daily log for %s on %s already recorded", project.name, diff.date)
        except StoreError as e:
            logger.error("Failed to write daily log for %s: %s", project.name, e)

    # ---- tags ----

    def sync_project_tags(self, project: Project, auto_create_milestones: bool) -> TagSyncResult:
        """Cache the repository's tags; new tags optionally become completed milestones.

        Raises ScannerError if tags cannot be listed and StoreError if the
        cache cannot be written.
        """
        tags = self.scanner.list_tags(project.path)
        result = TagSyncResult(project_id=project.id, total_tags=len(tags))

        for tag in tags:
            cached = CachedGitTag.from_git_tag(project.id, tag)
            if not self.store.upsert_git_tag(cached):
                continue
            result.new_tags.append(cached)

            if not auto_create_milestones:
                continue
            if self.store.milestone_exists_for_tag(project.id, tag.name):
                continue

            try:
                self.store.create_milestone(Milestone.from_tag(project.id, cached))
            except StoreError as e:
                logger.warning("Failed to create milestone for tag %s: %s", tag.name, e)
                continue
            result.milestones_created += 1
            logger.info("Created milestone from tag %s in %s", tag.name, project.name)

        return result

    def _sync_all_tags(self, projects: list[Project], auto_create_milestones: bool, report: ScanReport) -> None:
        for project in projects:
            if not self.scanner.is_repository(project.path):
                continue
            try:
                result = self.sync_project_tags(project, auto_create_milestones)
            except (ScannerError, StoreError) as e:
                logger.warning("Failed to sync tags for %s: %s", project.name, e)
                continue
            report.tags_synced += len(result.new_tags)
            report.milestones_created += result.milestones_created

        if report.tags_synced:
            logger.info(
                "Tag sync: %d new tags, %d milestones created",
                report.tags_synced,
                report.milestones_created,
            )

    # ---- store access ----

    def _load_settings(self) -> UserSettings:
        try:
            return self.store.get_user_settings()
        except StoreError as e:
            raise SchedulerError(f"Failed to read settings: {e}") from e

    def _active_projects(self) -> list[Project]:
        try:
            return self.store.get_projects(ProjectStatus.ACTIVE)
        except StoreError as e:
            raise SchedulerError(f"Failed to get projects: {e}") from e
