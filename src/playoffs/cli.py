# Command line bracket viewer: print the bracket implied by a predictions file

import argparse
import os
import sys
import yaml
from .models import DEFAULT_ROSTER, load_roster, get_team
from .template import DEFAULT_TEMPLATE, MalformedTemplateError, load_template
from .derivation import get_bracket_display


def load_predictions(file_path):
    """Load a matchup id -> winner mapping from YAML (or JSON)."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must hold a mapping of matchup id to winner")
    if 'predictions' in data:
        data = data['predictions']
        if not isinstance(data, dict):
            raise ValueError(f"'predictions' in {file_path} must be a mapping of matchup id to winner")
    return {str(k): str(v) for k, v in data.items() if v}


def format_entrant(label, roster):
    team = get_team(roster, label)
    if team:
        return f"{team.name} (#{team.seed} {team.conference})" if team.seed else team.name
    return label


def print_bracket(display, roster):
    for round_name, matches in display['rounds'].items():
        print(f"\n--- {round_name} ---")
        for match in matches:
            team1, team2 = match['teams']
            line = f"  {match['matchup_id']}: {format_entrant(team1, roster)} vs {format_entrant(team2, roster)}"
            if match['winner']:
                line += f"  ->  {format_entrant(match['winner'], roster)}"
            print(line)

    print()
    if display['champion']:
        print(f"Champion: {format_entrant(display['champion'], roster)}")
    else:
        print("Champion: not picked yet")
    print(f"Picks made: {display['predicted']}/{display['total_matchups']}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Show the playoff bracket implied by a set of predictions.")
    parser.add_argument('predictions', help="YAML or JSON file mapping matchup id to predicted winner")
    parser.add_argument('--template', help="YAML bracket template (defaults to the NBA playoff bracket)")
    parser.add_argument('--roster', help="YAML team roster (defaults to the NBA playoff field)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    for path in (args.predictions, args.template, args.roster):
        if path and not os.path.exists(path):
            print(f"Error: file not found: {path}", file=sys.stderr)
            return 1

    try:
        roster = load_roster(args.roster) if args.roster else DEFAULT_ROSTER
        # Seeds are only checked against a roster the user supplied
        template = load_template(args.template, roster=roster if args.roster else None) if args.template else DEFAULT_TEMPLATE
        predictions = load_predictions(args.predictions)
    except MalformedTemplateError as e:
        print(f"Error: malformed bracket template: {e}", file=sys.stderr)
        return 1
    except (ValueError, AttributeError, yaml.YAMLError) as e:
        print(f"Error: could not read input: {e}", file=sys.stderr)
        return 1

    print_bracket(get_bracket_display(template, predictions, roster), roster)
    return 0


if __name__ == '__main__':
    sys.exit(main())
