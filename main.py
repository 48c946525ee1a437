#!/usr/bin/env python3
"""
Investment Decision Checkpoint: CLI entry point.

Usage:
    python main.py                        # Evaluate the bundled sample decision
    python main.py --sample "Momentum punt"
    python main.py decision.json          # Evaluate a decision file
    python main.py decision.json --insights
    python main.py --risk-profile         # Score the bundled risk questionnaire
    python main.py --risk-profile risk.json --language zh
    python main.py --json                 # Raw JSON instead of a report

External analysis runs when CHECKPOINT_ANALYSIS_API_KEY is set; otherwise
only the local rubric is used.

API server:
    uvicorn decision_checkpoint.api:app --reload --port 8080
    curl http://localhost:8080/sample
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from decision_checkpoint.errors import AnswerValidationError
from decision_checkpoint.logging_config import setup_logging
from decision_checkpoint.pipeline import DecisionEvaluationPipeline
from decision_checkpoint.rating import Rating
from decision_checkpoint.samples import (
    SAMPLE_RISK_ANSWERS,
    load_decision_file,
    load_risk_answers_file,
    load_sample_decision,
)


def main():
    parser = argparse.ArgumentParser(
        description="Investment Decision Checkpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", nargs="?", help="JSON file with a decision (or risk answers with --risk-profile)")
    parser.add_argument("--sample", type=str, nargs="?", const="", help="Evaluate a bundled sample decision")
    parser.add_argument("--risk-profile", action="store_true", help="Score the risk questionnaire instead")
    parser.add_argument("--insights", action="store_true", help="Include cross-stage consistency insights")
    parser.add_argument("--language", choices=["en", "zh"], default=None, help="Output language")
    parser.add_argument("--json", action="store_true", help="Output raw JSON instead of formatted report")
    args = parser.parse_args()

    setup_logging()
    pipeline = DecisionEvaluationPipeline.from_settings()

    try:
        if args.risk_profile:
            answers = load_risk_answers_file(args.path) if args.path else SAMPLE_RISK_ANSWERS
        elif args.path:
            decision = load_decision_file(args.path)
        else:
            decision = load_sample_decision(args.sample or None)
    except (OSError, ValueError, KeyError) as e:
        print(f"Cannot load input: {e}", file=sys.stderr)
        return 2

    try:
        if args.risk_profile:
            risk = pipeline.assess_risk_profile(answers, args.language)
            if args.json:
                print(json.dumps(risk.to_dict(), indent=2, ensure_ascii=False))
            else:
                pipeline.print_risk_report(risk)
            return 0

        result = asyncio.run(pipeline.evaluate(decision, args.language))
    except AnswerValidationError as e:
        print(f"Cannot evaluate: missing required answers: {', '.join(e.fields)}", file=sys.stderr)
        return 2

    insights = pipeline.insights(decision, args.language) if args.insights else None

    if args.json:
        output = result.to_dict()
        if insights is not None:
            output["insights"] = insights.to_dict()
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        pipeline.print_report(result, insights)

    # Exit summary
    if result.rating == Rating.HIGH_RISK:
        print("⚠️  Decision rated high-risk", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
