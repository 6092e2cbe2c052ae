"""
Incident intake through the chatbot.

When the assistant has collected enough detail it closes the intake with a
tag of the form::

    [REPORT_FINALIZED: Type|Category|Location|Description|Priority]

The tag is turned into a stored report and replaced by a confirmation line.
"""
import logging
import re

from pymongo.errors import PyMongoError

from backend.models.report import FIELD_LIMITS, PRIORITIES, Report, normalize_choice
from backend.utils.errors import ValidationError

logger = logging.getLogger(__name__)

REPORT_TAG = re.compile(r'\[REPORT_FINALIZED:\s*(.*?)\]', re.DOTALL)
CONFIRMATION = "\n\n**STATUS: Your case has been securely registered with the ASTU Administration.**"
NOT_REGISTERED = (
    "\n\n**STATUS: Your case could not be registered automatically. "
    "Please submit it through the report form or contact campus security.**"
)


class ReportIntakeAgent:
    def parse_report_tag(self, text):
        """Return the report fields carried by the first tag in ``text``, or None"""
        match = REPORT_TAG.search(text or '')
        if not match:
            return None

        parts = [p.strip() for p in match.group(1).split('|')]
        parts += [''] * (5 - len(parts))

        return {
            'type': 'maintenance' if 'maintenance' in parts[0].lower() else 'security',
            'category': (parts[1] or 'General')[:FIELD_LIMITS['category']],
            'location': (parts[2] or 'Unknown')[:FIELD_LIMITS['location']],
            'description': (parts[3] or 'N/A')[:FIELD_LIMITS['description']],
            'priority': normalize_choice(parts[4], PRIORITIES) or 'medium'
        }

    def process_answer(self, answer, user_id, conversation_id=None):
        """Create a report for a finalized intake; returns (answer, report or None)"""
        fields = self.parse_report_tag(answer)
        if fields is None:
            return answer, None

        try:
            report = Report(
                user_id=user_id,
                source='chatbot',
                conversation_id=conversation_id,
                **fields
            ).save()
        except (ValidationError, PyMongoError, RuntimeError):
            logger.exception("Could not register chatbot report for user %s", user_id)
            return REPORT_TAG.sub(lambda _: NOT_REGISTERED, answer, count=1), None

        logger.info("Chatbot registered report %s for user %s", report.reference, user_id)

        confirmation = f"{CONFIRMATION} Reference: {report.reference}"
        return REPORT_TAG.sub(lambda _: confirmation, answer, count=1), report
