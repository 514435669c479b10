"""Command-line interface for FocusBuddy."""

import argparse
import json
import logging
import sys


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="focusbuddy",
        description="FocusBuddy - attention and gesture inference for a desk robot",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to YAML config file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Demo command
    subparsers.add_parser("demo", help="Replay the built-in demo scenario")

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Replay a YAML scenario")
    replay_parser.add_argument("scenario", help="Path to scenario YAML file")
    replay_parser.add_argument(
        "--json", action="store_true",
        help="Print the status after every tick as JSON lines",
    )

    # Classify command
    classify_parser = subparsers.add_parser("classify", help="Classify a foreground app")
    classify_parser.add_argument("app", help="Application name or bundle id")
    classify_parser.add_argument("--title", default="", help="Window or tab title")
    classify_parser.add_argument(
        "--whitelist", action="append", default=[],
        help="Whitelisted substring (repeatable)",
    )

    # Moods command
    subparsers.add_parser("moods", help="List moods and their appearance")

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "demo":
        from focusbuddy.demo import main as demo_main
        demo_main(config_path=args.config)

    elif args.command == "replay":
        if not args.json:
            from focusbuddy.demo import main as demo_main
            demo_main(scenario_path=args.scenario, config_path=args.config)
            return

        from focusbuddy.config import FocusSettings, load_config
        from focusbuddy.demo import Scenario, run_scenario
        from focusbuddy.orchestrator import FocusOrchestrator
        from focusbuddy.perception import PerceptionWorker

        try:
            scenario = Scenario.from_yaml(args.scenario)
        except FileNotFoundError:
            print(f"Scenario not found: {args.scenario}")
            sys.exit(1)

        config = load_config(args.config)
        orchestrator = FocusOrchestrator(config=config)
        worker = PerceptionWorker.from_config(config)
        for status in run_scenario(scenario, orchestrator, worker=worker, settings=FocusSettings.from_config(config)):
            print(json.dumps(status.to_dict()))

    elif args.command == "classify":
        from focusbuddy.config import FocusSettings, load_config
        from focusbuddy.context import ContextClassifier

        config = load_config(args.config)
        settings = FocusSettings.from_config(config)
        whitelist = list(settings.whitelisted_sites) + args.whitelist
        classifier = ContextClassifier.from_config(config.get("context", {}), whitelist=whitelist)

        context = classifier.classify(args.app, args.title)
        print(f"{context.value} (strictness={context.strictness}, look-away allowed={context.allowed_look_away})")

    elif args.command == "moods":
        from focusbuddy.attention import Mood, mood_appearance

        for mood in Mood:
            look = mood_appearance(mood)
            print(f"{mood.value:<12} {look.display_name:<12} eyes={look.eye_color} brow={look.brow_position:+.1f}")

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
