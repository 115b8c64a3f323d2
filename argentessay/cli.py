# Flask CLI commands for upload maintenance.
#
# - flask uploads cleanup [--days 30] [--category temp]
#   Delete files older than --days from one upload category folder.

import os

import click
from flask import current_app
from flask.cli import AppGroup

from argentessay.services.upload_service import clean_old_files

uploads_cli = AppGroup("uploads", help="Upload folder maintenance.")


@uploads_cli.command("cleanup")
@click.option("--days", default=None, type=int, help="Delete files older than this many days.")
@click.option("--category", default="temp", show_default=True, help="Upload sub-folder to sweep.")
def cleanup(days, category):
    """Remove stale files from an upload folder."""
    if days is None:
        days = current_app.config.get("TEMP_UPLOAD_RETENTION_DAYS", 1)
    directory = os.path.join(current_app.config["UPLOAD_FOLDER"], category)
    removed = clean_old_files(directory, days)
    click.echo(f"Removed {removed} file(s) older than {days} day(s) from {directory}")
