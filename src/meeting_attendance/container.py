from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciliation import AttendanceReconciler
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.view import AttendanceView, ViewRegistry
from .database.connection import DBConfig, DatabaseConnection
from .meetings.mysql_meeting_repository import MySQLMeetingModeRepository, MySQLMeetingRepository
from .meetings.repository import MeetingModeRepository, MeetingRepository
from .meetings.resolver import MeetingResolver
from .meetings.service import MeetingService
from .members.enrollment import EnrollmentFilter, is_enrolled
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberRepository
from .organization.mysql_organization_repository import MySQLOrganizationRepository
from .organization.repository import OrganizationRepository
from .tiers.mysql_tier_repository import MySQLTierListRepository
from .tiers.repository import TierListRepository
from .tiers.service import TierService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    organization_repo: OrganizationRepository
    members_repo: MemberRepository
    attendance_repo: AttendanceRepository
    meetings_repo: MeetingRepository
    meeting_modes_repo: MeetingModeRepository
    tier_lists_repo: TierListRepository

    meeting_resolver: MeetingResolver
    meeting_service: MeetingService
    tier_service: TierService
    reconciler: AttendanceReconciler
    attendance_service: AttendanceService
    views: ViewRegistry


def assemble(
    *,
    organization_repo: OrganizationRepository,
    members_repo: MemberRepository,
    attendance_repo: AttendanceRepository,
    meetings_repo: MeetingRepository,
    meeting_modes_repo: MeetingModeRepository,
    tier_lists_repo: TierListRepository,
    conn: Optional[DatabaseConnection] = None,
    enrollment: EnrollmentFilter = is_enrolled,
) -> Container:
    """Wire services on top of any repository implementations."""

    meeting_resolver = MeetingResolver(meetings_repo, attendance_repo, organization_repo)
    meeting_service = MeetingService(meeting_modes_repo, meeting_resolver)
    tier_service = TierService(tier_lists_repo)
    reconciler = AttendanceReconciler(
        organization_repo,
        members_repo,
        attendance_repo,
        meeting_resolver,
        tier_service,
        modes=meeting_service,
        enrollment=enrollment,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        meetings_repo,
        members_repo,
        organization_repo,
        meeting_resolver,
    )
    views = ViewRegistry(lambda: AttendanceView(reconciler, enrollment=enrollment))

    return Container(
        conn=conn,
        organization_repo=organization_repo,
        members_repo=members_repo,
        attendance_repo=attendance_repo,
        meetings_repo=meetings_repo,
        meeting_modes_repo=meeting_modes_repo,
        tier_lists_repo=tier_lists_repo,
        meeting_resolver=meeting_resolver,
        meeting_service=meeting_service,
        tier_service=tier_service,
        reconciler=reconciler,
        attendance_service=attendance_service,
        views=views,
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble(
        conn=conn,
        organization_repo=MySQLOrganizationRepository(conn),
        members_repo=MySQLMemberRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        meetings_repo=MySQLMeetingRepository(conn),
        meeting_modes_repo=MySQLMeetingModeRepository(conn),
        tier_lists_repo=MySQLTierListRepository(conn),
    )
