import re

from pymongo.errors import PyMongoError

from backend.agents.report_agent import ReportIntakeAgent
from backend.models.report import Report


def test_no_tag_means_no_report():
    agent = ReportIntakeAgent()

    assert agent.parse_report_tag("Where did this happen?") is None
    assert agent.parse_report_tag(None) is None


def test_parse_full_tag():
    fields = ReportIntakeAgent().parse_report_tag(
        "Got it.\n[REPORT_FINALIZED: Security|Harassment|Cafeteria|Verbal threats at lunch|Critical]"
    )

    assert fields == {
        'type': 'security',
        'category': 'Harassment',
        'location': 'Cafeteria',
        'description': 'Verbal threats at lunch',
        'priority': 'critical'
    }


def test_parse_partial_tag_uses_defaults():
    fields = ReportIntakeAgent().parse_report_tag("[REPORT_FINALIZED: Facility Maintenance||Block 9]")

    assert fields['type'] == 'maintenance'
    assert fields['category'] == 'General'
    assert fields['location'] == 'Block 9'
    assert fields['description'] == 'N/A'
    assert fields['priority'] == 'medium'


def test_unknown_priority_falls_back_to_medium():
    fields = ReportIntakeAgent().parse_report_tag("[REPORT_FINALIZED: Security|Theft|Gate 2|Bike stolen|ASAP]")

    assert fields['priority'] == 'medium'


def test_process_answer_replaces_tag_with_confirmation(app, db):
    answer = "Thanks for the details.\n[REPORT_FINALIZED: Security|Theft|Gate 2|Bike stolen|High]"

    with app.app_context():
        text, report = ReportIntakeAgent().process_answer(answer, 'user-1', 'conversation-1')

    assert text.startswith("Thanks for the details.")
    assert "REPORT_FINALIZED" not in text
    assert text.endswith(f"Reference: {report.reference}")
    assert re.fullmatch(r'ASTU-\d{5}', report.reference)
    stored = db.reports.find_one({'reference': report.reference})
    assert stored['source'] == 'chatbot'
    assert stored['conversation_id'] == 'conversation-1'
    assert stored['status'] == 'open'


def test_process_answer_without_tag_is_untouched(app, db):
    with app.app_context():
        text, report = ReportIntakeAgent().process_answer("Which building?", 'user-1')

    assert text == "Which building?"
    assert report is None
    assert db.reports.count_documents({}) == 0


def test_oversized_fields_are_truncated(app, db):
    answer = f"[REPORT_FINALIZED: Security|{'c' * 300}|{'l' * 300}|{'x' * 6000}|High]"

    fields = ReportIntakeAgent().parse_report_tag(answer)
    assert len(fields['category']) == 100
    assert len(fields['location']) == 200
    assert len(fields['description']) == 5000

    with app.app_context():
        _, report = ReportIntakeAgent().process_answer(answer, 'user-1')

    assert report is not None
    assert len(db.reports.find_one({'reference': report.reference})['description']) == 5000


def test_failed_registration_keeps_the_answer(app, db, monkeypatch):
    def unavailable(self):
        raise PyMongoError('connection refused')

    monkeypatch.setattr(Report, 'save', unavailable)
    answer = "Noted.\n[REPORT_FINALIZED: Security|Theft|Gate 2|Bike stolen|High]"

    with app.app_context():
        text, report = ReportIntakeAgent().process_answer(answer, 'user-1')

    assert report is None
    assert text.startswith("Noted.")
    assert "REPORT_FINALIZED" not in text
    assert "could not be registered automatically" in text
    assert db.reports.count_documents({}) == 0
