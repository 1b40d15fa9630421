# services/stats_service.py
from sqlalchemy import text
from sqlalchemy.engine import Engine

from domain.models import Stats


def get_stats(engine: Engine) -> Stats:
    """Dashboard counters for the admin page."""
    with engine.connect() as conn:
        p = conn.execute(text("""
            SELECT
              COUNT(*) AS total,
              SUM(CASE WHEN participant_type = 'offline' THEN 1 ELSE 0 END) AS offline,
              SUM(CASE WHEN participant_type = 'online'  THEN 1 ELSE 0 END) AS online,
              SUM(CASE WHEN is_checked_in = TRUE THEN 1 ELSE 0 END) AS checked_in,
              SUM(CASE WHEN is_checked_in = TRUE AND participant_type = 'offline' THEN 1 ELSE 0 END) AS checked_in_offline,
              SUM(CASE WHEN is_checked_in = TRUE AND participant_type = 'online'  THEN 1 ELSE 0 END) AS checked_in_online,
              SUM(CASE WHEN is_eligible_to_draw = TRUE THEN 1 ELSE 0 END) AS eligible
            FROM users
            WHERE role = 'participant'
        """)).mappings().one()

        i = conn.execute(text("""
            SELECT
              COUNT(*) AS total,
              SUM(CASE WHEN is_group = TRUE THEN 1 ELSE 0 END) AS grp
            FROM ideations
        """)).mappings().one()

        voters = conn.execute(text("SELECT COUNT(DISTINCT participant_id) FROM booth_votes")).scalar_one()
        draws = conn.execute(text("SELECT COUNT(*) FROM draw_logs")).scalar_one()
        winners = conn.execute(text("SELECT COUNT(*) FROM draw_winners")).scalar_one()

    submissions = int(i["total"] or 0)
    group_subs = int(i["grp"] or 0)
    return Stats(
        total_participants=int(p["total"] or 0),
        total_offline=int(p["offline"] or 0),
        total_online=int(p["online"] or 0),
        checked_in=int(p["checked_in"] or 0),
        checked_in_offline=int(p["checked_in_offline"] or 0),
        checked_in_online=int(p["checked_in_online"] or 0),
        eligible_for_draw=int(p["eligible"] or 0),
        submissions=submissions,
        group_submissions=group_subs,
        individual_submissions=submissions - group_subs,
        voters=int(voters or 0),
        draws=int(draws or 0),
        winners=int(winners or 0),
    )
