"""
Generate a session report from the saved session slot or a session JSON file.

Usage (from project root, with venv activated):

    python -m pulsefeedback.generate_report --out report.json --excel report.xlsx --charts charts.png
"""

import argparse
import logging
import os

from pulsefeedback.core.analytics import SessionAnalytics
from pulsefeedback.core.ask import AskError, SessionAsker
from pulsefeedback.core.config import PulseConfig
from pulsefeedback.core.report import ReportGenerator
from pulsefeedback.core.storage import SessionStore


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a session report from a recorded session.")
    parser.add_argument(
        "--session",
        type=str,
        default=PulseConfig().session_slot_path,
        help="Path to the session JSON (default: the last saved session slot)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default="report.json",
        help="Output JSON report path (default: report.json)",
    )
    parser.add_argument("--excel", type=str, default=None, help="Optional Excel report path")
    parser.add_argument("--charts", type=str, default=None, help="Optional PNG path for analytics charts")
    parser.add_argument("--ask", type=str, default=None, help="Optional question to ask about the session")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session_path = os.path.abspath(args.session)
    if not os.path.exists(session_path):
        raise SystemExit(f"Session file not found: {session_path}")

    session = SessionStore(session_path).load()
    if session is None:
        raise SystemExit(f"Session file could not be read: {session_path}")

    generator = ReportGenerator(session)
    report = generator.export_json(os.path.abspath(args.out))
    if report is None:
        print("Warning: session has no points, report contains no data.")
    else:
        print(f"Tone: {report.tone.value}  confidence: {report.confidence:.2f}")
        for line in report.insights:
            print(f"  - {line}")
        if report.micro_question:
            print(f"Question: {report.micro_question}")
    print(f"Report written to: {os.path.abspath(args.out)}")

    if args.excel:
        generator.export_excel(os.path.abspath(args.excel))
        print(f"Excel report written to: {os.path.abspath(args.excel)}")
    if args.charts:
        SessionAnalytics(session).render(os.path.abspath(args.charts))
        print(f"Charts written to: {os.path.abspath(args.charts)}")
    if args.ask:
        try:
            print(SessionAsker().ask(args.ask, session))
        except AskError as exc:
            raise SystemExit(f"Ask failed: {exc}")


if __name__ == "__main__":
    main()
