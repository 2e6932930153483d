"""Validate command - check a state file against quest criteria."""

import json
from pathlib import Path

import click

from gitquest.cli.commands.state_file import load_state
from gitquest.cli.output import error, info, success
from gitquest.core.errors import CriteriaError
from gitquest.validation import validate


@click.command('validate')
@click.argument('state_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('criteria_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--bonus-xp', type=int, default=None, help='Bonus XP reported on success')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
def validate_cmd(state_file, criteria_file, bonus_xp, as_json):
    """
    Validate a repository state against criteria.

    CRITERIA_FILE holds one criteria object (a quest) or an ordered list
    of them (a boss battle).
    """
    state = load_state(state_file)
    try:
        with open(criteria_file, 'r', encoding='utf-8') as f:
            criteria = json.load(f)
        result = validate(criteria, state, bonus_xp=bonus_xp)
    except (ValueError, CriteriaError) as exc:
        click.echo(error(f"Invalid criteria: {exc}"))
        raise click.Abort()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        click.echo(success(result.feedback))
        if result.bonus_xp:
            click.echo(info(f"Bonus XP: {result.bonus_xp}"))
    else:
        click.echo(error(result.feedback))

    if not result.success:
        raise click.Abort()
