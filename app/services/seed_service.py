"""
Demo data seeding.

Creates five team members and three initiatives positioned mid-lifecycle
(ENRICHMENT, VALIDATION, VISUALIZATION) with completed checklists, approved
prior stages, scopes of work, assets, risks, dependencies, assignments and
access requests.

Usage:
    flask seed-demo              # wipes lifecycle tables first
    python scripts/seed_demo.py

Transaction policy: flush() only; the caller commits.
"""

import logging
from datetime import date, datetime, timezone

from app.models import db
from app.models.asset import DataAsset
from app.models.initiative import (
    APPROVAL_ROLES,
    STAGE_SEQUENCE,
    Initiative,
    ScopeOfWork,
    StageApproval,
    StageChecklistItem,
    StageHistory,
)
from app.models.raid import Dependency, Risk
from app.models.team import AccessProvision, InitiativeAssignment, TeamMember

logger = logging.getLogger(__name__)

SEED_ACTOR = "system_seed"


def _at(y, m, d):
    return datetime(y, m, d, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  Seed data
# ═══════════════════════════════════════════════════════════════════════════

TEAM_MEMBERS = {
    "pm": dict(name="Morgan Lee", email="morgan.lee@pilotgb.io",
               role_title="Project Manager", team="PMO",
               onboarding_status="COMPLETED", start_date=date(2024, 12, 1)),
    "architect": dict(name="Elena Park", email="elena.park@pilotgb.io",
                      role_title="Lead Data Architect", team="Data Platform",
                      onboarding_status="COMPLETED", start_date=date(2023, 10, 15)),
    "analytics": dict(name="Jared Kim", email="jared.kim@pilotgb.io",
                      role_title="Analytics Engineer", team="Analytics Engineering",
                      onboarding_status="IN_PROGRESS", start_date=date(2025, 2, 10)),
    "engineer": dict(name="Lucia Mendes", email="lucia.mendes@pilotgb.io",
                     role_title="Data Engineer", team="Data Engineering",
                     onboarding_status="IN_PROGRESS", start_date=date(2025, 3, 1)),
    "quality": dict(name="Rahul Patel", email="rahul.patel@pilotgb.io",
                    role_title="Data Quality Lead", team="Governance",
                    onboarding_status="AWAITING"),
}

RESPONSIBILITIES = {
    "pm": "Project Management",
    "architect": "Data Architecture",
    "analytics": "Analytics Engineering",
    "engineer": "Ingestion & Pipelines",
    "quality": "Data Quality & Validation",
}

INITIATIVES = [
    {
        "base": dict(
            name="Customer 360 Enrichment",
            description=("Unify CRM, support, and product telemetry to power a "
                         "holistic customer experience dashboard."),
            stage="ENRICHMENT", status="AT_RISK", health_status="WATCH", risk_level="MEDIUM",
            sow_reference="SOW-ACME-2025-01", engagement_lead="Dana Waters",
            start_date=date(2025, 1, 15), target_date=date(2025, 6, 30),
        ),
        "scope": dict(
            status="APPROVED", project_type="DATA",
            pm_approved=True, pm_approved_at=_at(2025, 1, 20),
            architect_approved=True, architect_approved_at=_at(2025, 1, 22),
            summary=("Scope includes ingestion through enrichment of customer telemetry "
                     "tied to executive dashboards."),
            deliverables=("Golden customer dataset, unified identity graph, "
                          "production-ready Looker dashboard, runbook."),
        ),
        "assets": [
            dict(name="crm_customers_clean", asset_type="DATASET", owner_team="Data Engineering",
                 steward="Miguel Ortiz",
                 acceptance_criteria=("Daily snapshot with <0.5% null contacts, aligned to "
                                      "canonical customer ID.")),
            dict(name="Customer 360 Looker Dashboard", asset_type="DASHBOARD",
                 owner_team="Analytics Engineering", steward="Priya Desai",
                 acceptance_criteria="Interactive dashboard with daily refresh and stakeholder sign-off."),
        ],
        "risks": [
            dict(title="Schema drift in support ticket source",
                 description="Support vendor is rolling out a new API version that could break ingestion.",
                 severity="MEDIUM", status="OPEN", owner="Dana Waters",
                 mitigation_plan="Coordinate with vendor, add contract tests, parallel run for two weeks."),
        ],
        "dependencies": [
            dict(name="Identity resolution service upgrade", dependency_type="Platform",
                 status="BLOCKED", external_system="Identity Graph v2", due_date=date(2025, 5, 15),
                 description="Awaiting new ID graph release to merge CRM + product telemetry."),
        ],
        "access": [
            dict(member="analytics", system_name="dbt Cloud Workspace", status="GRANTED",
                 fulfilled_at=_at(2025, 2, 5), notes="Granted by platform operations."),
            dict(member="engineer", system_name="Airflow Scheduler", status="IN_PROGRESS",
                 notes="Awaiting security review completion."),
            dict(member="quality", system_name="Data Quality Portal", status="REQUESTED"),
        ],
    },
    {
        "base": dict(
            name="Financial Data Trust Validation",
            description=("Automate validation gates for finance warehouse ensuring "
                         "monthly close accuracy."),
            stage="VALIDATION", status="ON_TRACK", health_status="HEALTHY", risk_level="LOW",
            sow_reference="SOW-FIN-2025-04", engagement_lead="Christopher Lane",
            start_date=date(2025, 2, 1), target_date=date(2025, 5, 30),
        ),
        "scope": dict(
            status="SIGNED_OFF", project_type="DATA",
            pm_approved=True, pm_approved_at=_at(2025, 2, 5),
            architect_approved=True, architect_approved_at=_at(2025, 2, 6),
            signed_off_at=_at(2025, 2, 10),
            summary=("Finance governance program covering reconciliation, variance "
                     "detection, and audit readiness."),
            deliverables=("Automated validation suite, exception management workflow, "
                          "quarterly audit dashboard."),
        ),
        "assets": [
            dict(name="finance_close_validations", asset_type="PIPELINE", owner_team="Governance",
                 steward="Alicia Brown",
                 acceptance_criteria=("Automated validation suite covering reconciliation, "
                                      "variance, and completeness checks.")),
        ],
        "risks": [
            dict(title="Peak load may extend validation runtime",
                 description="Monthly close spikes may cause jobs to exceed SLA during quarter close.",
                 severity="LOW", status="MITIGATED", owner="Christopher Lane",
                 mitigation_plan="Provision additional compute and stagger job execution windows."),
        ],
        "dependencies": [
            dict(name="ERP integration testing", dependency_type="Application", status="OPEN",
                 external_system="Oracle ERP QA", due_date=date(2025, 4, 15),
                 description="Need ERP QA environment ready for test automation."),
        ],
        "access": [
            dict(member="analytics", system_name="Great Expectations Runner", status="GRANTED",
                 fulfilled_at=_at(2025, 2, 12), notes="Provisioned with finance dataset scope."),
            dict(member="quality", system_name="Governance Portal", status="GRANTED",
                 fulfilled_at=_at(2025, 2, 18)),
        ],
    },
    {
        "base": dict(
            name="Marketing Attribution Dashboard",
            description=("Deliver executive visualization of multi-touch marketing "
                         "attribution across digital channels."),
            stage="VISUALIZATION", status="BLOCKED", health_status="CRITICAL", risk_level="HIGH",
            sow_reference="SOW-MARKETING-2025-02", engagement_lead="Ava Greene",
            start_date=date(2025, 1, 5), target_date=date(2025, 4, 30),
        ),
        "scope": dict(
            status="IN_REVIEW", project_type="HYBRID",
            summary=("Attribution insights for marketing leadership with governance "
                     "constraints around PII access."),
            deliverables=("Curated attribution dataset, executive summary dashboard, "
                          "privacy compliance documentation."),
        ),
        "assets": [
            dict(name="marketing_touchpoints_curated", asset_type="DATASET",
                 owner_team="Data Engineering", steward="Noah Beck",
                 acceptance_criteria=("Unified dataset with attributed conversions and spend "
                                      "mapped to paid channels.")),
            dict(name="Attribution Executive Deck", asset_type="REPORT", owner_team="Analytics",
                 steward="Sasha Kim",
                 acceptance_criteria=("Monthly narrative with KPIs, budget pacing, and scenario "
                                      "modeling ready for CMO review.")),
        ],
        "risks": [
            dict(title="Data privacy compliance review pending",
                 description=("Legal team has not signed off on blending ad platform data "
                              "with CRM contact data."),
                 severity="HIGH", status="OPEN", owner="Ava Greene",
                 mitigation_plan=("Host review workshop, implement additional anonymization, "
                                  "capture retention policy.")),
        ],
        "dependencies": [
            dict(name="Legal privacy assessment", dependency_type="Governance", status="BLOCKED",
                 external_system="Legal workflow", due_date=date(2025, 5, 10),
                 description="Need privacy counsel approval before production deployment."),
        ],
        "access": [
            dict(member="analytics", system_name="Visualization Sandbox", status="IN_PROGRESS",
                 notes="Pending privacy team escalation."),
            dict(member="engineer", system_name="Advertising Data Lake", status="BLOCKED",
                 notes="Legal hold until privacy review completes."),
        ],
    },
]


# ═══════════════════════════════════════════════════════════════════════════
#  Seeding
# ═══════════════════════════════════════════════════════════════════════════

def clear_demo_data():
    """Delete every lifecycle, RAID, asset and team row (children first)."""
    for model in (
        AccessProvision, InitiativeAssignment, StageApproval, ScopeOfWork,
        StageHistory, StageChecklistItem, DataAsset, Risk, Dependency,
        Initiative, TeamMember,
    ):
        db.session.query(model).delete()
    db.session.flush()


def _seed_lifecycle(initiative, pm, architect):
    """Checklist, history and approvals consistent with the current stage.

    Every stage up to and including the current one has a completed
    checklist; every stage before the current one is approved by both roles.
    """
    current_idx = STAGE_SEQUENCE.index(initiative.stage)
    approvers = {"PROJECT_MANAGER": pm.name, "DATA_ARCHITECT": architect.name}

    for idx, stage in enumerate(STAGE_SEQUENCE):
        completed = idx <= current_idx
        db.session.add(StageChecklistItem(
            initiative_id=initiative.id, stage=stage,
            title=f"{stage} exit review",
            description=f"Confirm {stage.lower()} stage exit criteria.",
            completed=completed,
            completed_at=_at(2025, 3, 1) if completed else None,
        ))

        approved = idx < current_idx
        for role in APPROVAL_ROLES:
            db.session.add(StageApproval(
                initiative_id=initiative.id, stage=stage, role=role,
                approved=approved,
                approved_by=approvers[role] if approved else None,
                approved_at=_at(2025, 2, 1) if approved else None,
                notes="Stage exit conditions satisfied." if approved else None,
            ))

        if idx <= current_idx:
            db.session.add(StageHistory(
                initiative_id=initiative.id,
                from_stage=STAGE_SEQUENCE[idx - 1] if idx else None,
                to_stage=stage,
                actor=SEED_ACTOR,
                reason="Seeded current stage" if idx == current_idx else "Seeded historical progression",
            ))


def seed_demo_data(clear=True):
    """Insert the demo data set.

    Returns:
        {"team_members": int, "initiatives": int}
    """
    if clear:
        clear_demo_data()

    members = {}
    for key, data in TEAM_MEMBERS.items():
        members[key] = TeamMember(**data)
        db.session.add(members[key])
    db.session.flush()

    pm, architect = members["pm"], members["architect"]

    for entry in INITIATIVES:
        initiative = Initiative(
            project_manager=pm.name, data_architect=architect.name, **entry["base"],
        )
        db.session.add(initiative)
        db.session.flush()

        _seed_lifecycle(initiative, pm, architect)

        db.session.add(ScopeOfWork(
            initiative_id=initiative.id,
            pm_owner=pm.name,
            architect_owner=architect.name,
            last_reviewed_at=_at(2025, 3, 10),
            **entry["scope"],
        ))
        for asset in entry["assets"]:
            db.session.add(DataAsset(initiative_id=initiative.id, **asset))
        for risk in entry["risks"]:
            db.session.add(Risk(initiative_id=initiative.id, **risk))
        for dep in entry["dependencies"]:
            db.session.add(Dependency(initiative_id=initiative.id, **dep))
        for key, member in members.items():
            db.session.add(InitiativeAssignment(
                initiative_id=initiative.id, member_id=member.id,
                responsibility=RESPONSIBILITIES[key],
            ))
        for access in entry["access"]:
            access = dict(access)
            member = members[access.pop("member")]
            db.session.add(AccessProvision(
                initiative_id=initiative.id, member_id=member.id, **access,
            ))
        db.session.flush()
        logger.info("Seeded initiative: %s [%s]", initiative.name, initiative.stage)

    return {"team_members": len(members), "initiatives": len(INITIATIVES)}
