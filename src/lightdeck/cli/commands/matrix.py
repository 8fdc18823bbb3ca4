"""Matrix decode / encode commands."""

import json

import click
from pydantic import TypeAdapter

from lightdeck.codec import decode, encode
from lightdeck.exceptions import LightDeckError
from lightdeck.models import Matrix, Segment

_matrix = TypeAdapter(Matrix)
_segments = TypeAdapter(list[Segment])


def _read_json(source) -> object:
    try:
        return json.load(source)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}") from e


@click.group(name="matrix")
def matrix_group():
    """Convert between pixel matrices and segment lists."""
    pass


@matrix_group.command(name="decode")
@click.argument("source", type=click.File("r"), default="-")
@click.option("--summary", is_flag=True, help="Print one line per segment instead of JSON")
def decode_matrix(source, summary: bool):
    """
    Decode a matrix into segments.

    SOURCE is a JSON file (or - for stdin) holding either a flat matrix row
    (a list of {"device_id", "pixel"} cells and nulls) or a virtual with a
    "matrix_data" list of rows.
    """
    data = _read_json(source)
    if isinstance(data, dict):
        rows = data.get("matrix_data") or [[]]
        data = rows[0]

    try:
        segments = decode(_matrix.validate_python(data))
    except (ValueError, LightDeckError) as e:
        raise click.ClickException(f"Not a valid matrix: {e}") from e

    if summary:
        for segment in segments:
            click.echo(segment.describe())
        return

    click.echo(_segments.dump_json(segments, indent=2, exclude={"__all__": {"id"}}).decode())


@matrix_group.command(name="encode")
@click.argument("source", type=click.File("r"), default="-")
def encode_segments(source):
    """Encode a JSON list of segments (from SOURCE or stdin) into a matrix row."""
    data = _read_json(source)
    try:
        segments = _segments.validate_python(data)
    except (ValueError, LightDeckError) as e:
        raise click.ClickException(f"Not a valid segment list: {e}") from e

    click.echo(_matrix.dump_json(encode(segments)).decode())
