"""
Command-line interface for HealthPod.

Provides commands for importing and exporting health data between local
CSV/JSON files and the encrypted records of a Solid Pod.
"""

import json
import logging

import typer

from healthpod.features.registry import CSV_FEATURES, exporter_class, importer_class
from healthpod.infrastructure.crypto.cipher import RecordCipher
from healthpod.infrastructure.pod_client.client import create_pod_store, dump_listing
from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.services.profile import ProfileExporter, ProfileImporter
from healthpod.utils.exceptions import HealthPodError
from healthpod.utils.logging_config import setup_logging
from healthpod.utils.parameters import ParameterLoader

app = typer.Typer(help="HealthPod - Health data import and export for Solid Pods")

logger = logging.getLogger(__name__)

CONFIG_OPTION = typer.Option("config/config.yaml", help="Path to configuration file")
SECURITY_KEY_OPTION = typer.Option(
    None,
    "--security-key",
    envvar="HEALTHPOD_SECURITY_KEY",
    help="Security key used to encrypt and decrypt records",
)
YES_OPTION = typer.Option(False, "--yes", "-y", help="Answer yes to every confirmation")


def init_config(config_path: str = "config/config.yaml") -> ParameterLoader:
    """
    Initialize configuration and logging.

    Args:
        config_path: Path to configuration file.

    Returns:
        Parameter loader instance.
    """
    param_loader = ParameterLoader(config_path)
    setup_logging(param_loader.get_logging_config(), "healthpod")
    return param_loader


def open_repository(param_loader: ParameterLoader, security_key: str | None) -> PodRepository:
    """Create a repository for the configured Pod, prompting for the security key if needed."""
    if security_key is None:
        security_key = typer.prompt("Security key", hide_input=True)

    cipher = RecordCipher(security_key, param_loader.get_encryption_config())
    store = create_pod_store(param_loader.get_pod_config())
    return PodRepository(store, cipher)


def check_data_type(data_type: str) -> str:
    if data_type not in CSV_FEATURES:
        raise typer.BadParameter(f"expected one of: {', '.join(CSV_FEATURES)}")
    return data_type


@app.command()
def init(config_path: str = CONFIG_OPTION) -> None:
    """
    Create the HealthPod data containers in the Pod.

    One container is created per configured feature.
    """
    try:
        param_loader = init_config(config_path)
        pod_config = param_loader.get_pod_config()

        repository = PodRepository(create_pod_store(pod_config))
        urls = repository.initialise_feature_folders(pod_config.features)

        typer.echo(f"Initialised {len(urls)} feature folders")
        for url in urls:
            typer.echo(f"  - {url}")

    except HealthPodError as e:
        logger.error(f"Init failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("import-csv")
def import_csv(
    data_type: str = typer.Argument(..., callback=check_data_type, help="Feature to import"),
    csv_file: str = typer.Argument(..., help="CSV file to import"),
    dir_path: str | None = typer.Option(None, "--dir", help="Target directory in the Pod"),
    config_path: str = CONFIG_OPTION,
    security_key: str | None = SECURITY_KEY_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """
    Import a CSV file into the Pod.

    Each row is saved as an encrypted record. Existing records on the same
    dates are only replaced after confirmation.
    """
    try:
        param_loader = init_config(config_path)
        repository = open_repository(param_loader, security_key)

        def confirm_override(duplicate_files: list[str]) -> bool:
            typer.echo(f"Found {len(duplicate_files)} existing records on the imported dates:")
            for path in duplicate_files:
                typer.echo(f"  - {path}")
            return yes or typer.confirm("Override these records?", default=False)

        def confirm_unchecked() -> bool:
            typer.echo("Existing records could not be checked for duplicates.")
            return yes or typer.confirm("Import anyway?", default=False)

        importer = importer_class(data_type)(
            repository,
            csv_config=param_loader.get_csv_config(),
            confirm_override=confirm_override,
            confirm_unchecked=confirm_unchecked,
            processing_config=param_loader.get_processing_config(),
        )

        logger.info(f"Importing {csv_file} as {data_type}")
        result = importer.import_from_csv(csv_file, dir_path or data_type)

        if result.cancelled:
            typer.echo("Import cancelled")
            raise typer.Exit(code=1)

        typer.echo(f"Saved {len(result.saved_files)} records")
        if result.unchanged_files:
            typer.echo(f"Unchanged {len(result.unchanged_files)} records")
        if result.deleted_files:
            typer.echo(f"Replaced {len(result.deleted_files)} existing records")
        if result.skipped_rows:
            typer.echo(f"Skipped rows: {', '.join(str(r) for r in result.skipped_rows)}")
        for row_index, error in sorted(result.failed_rows.items()):
            typer.echo(f"Row {row_index} failed: {error}", err=True)
        if result.duplicate_timestamps:
            typer.echo(
                "Only the last entry was saved for: " + ", ".join(result.duplicate_timestamps)
            )

        if not result.success:
            raise typer.Exit(code=1)

    except HealthPodError as e:
        logger.error(f"Import failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("export-csv")
def export_csv(
    data_type: str = typer.Argument(..., callback=check_data_type, help="Feature to export"),
    output_file: str = typer.Argument(..., help="CSV file to write"),
    dir_path: str | None = typer.Option(None, "--dir", help="Source directory in the Pod"),
    config_path: str = CONFIG_OPTION,
    security_key: str | None = SECURITY_KEY_OPTION,
) -> None:
    """Export every record of a feature to a CSV file sorted by timestamp."""
    try:
        param_loader = init_config(config_path)
        repository = open_repository(param_loader, security_key)

        exporter = exporter_class(data_type)(
            repository, processing_config=param_loader.get_processing_config()
        )
        result = exporter.export_to_csv(output_file, dir_path or data_type)

        typer.echo(f"Exported {result.record_count} records to {result.path}")
        if result.skipped_files:
            typer.echo(f"Skipped {len(result.skipped_files)} unreadable files", err=True)

    except HealthPodError as e:
        logger.error(f"Export failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("import-profile")
def import_profile(
    json_file: str = typer.Argument(..., help="Profile JSON file to import"),
    config_path: str = CONFIG_OPTION,
    security_key: str | None = SECURITY_KEY_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """Import a profile JSON file into the Pod."""
    try:
        param_loader = init_config(config_path)
        repository = open_repository(param_loader, security_key)

        def confirm(preview: dict) -> bool:
            typer.echo("Profile to import:")
            for key, value in preview.items():
                typer.echo(f"  {key}: {value}")
            return yes or typer.confirm("Import this profile?", default=True)

        path = ProfileImporter(repository, confirm=confirm).import_json(json_file)
        if path is None:
            typer.echo("Import cancelled")
            raise typer.Exit(code=1)

        typer.echo(f"Profile saved to {path}")

    except HealthPodError as e:
        logger.error(f"Profile import failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("export-profile")
def export_profile(
    output_file: str = typer.Argument(..., help="JSON file to write"),
    config_path: str = CONFIG_OPTION,
    security_key: str | None = SECURITY_KEY_OPTION,
) -> None:
    """Export the most recent profile to a JSON file."""
    try:
        param_loader = init_config(config_path)
        repository = open_repository(param_loader, security_key)

        output = ProfileExporter(repository).export_json(output_file)
        typer.echo(f"Profile exported to {output}")

    except HealthPodError as e:
        logger.error(f"Profile export failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command("list")
def list_container(
    path: str = typer.Argument("", help="Directory under the HealthPod data container"),
    config_path: str = CONFIG_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the listing as JSON"),
) -> None:
    """List the files and sub-directories of a Pod directory."""
    try:
        param_loader = init_config(config_path)
        repository = PodRepository(create_pod_store(param_loader.get_pod_config()))
        resources = repository.get_resources_in_container(path)

        if as_json:
            typer.echo(dump_listing(resources))
            return

        typer.echo(resources.url)
        for sub_dir in resources.sub_dirs:
            typer.echo(f"  {sub_dir}/")
        for file_name in resources.files:
            typer.echo(f"  {file_name}")

    except HealthPodError as e:
        logger.error(f"Listing failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def config(config_path: str = CONFIG_OPTION) -> None:
    """Show the effective configuration with secrets masked."""
    try:
        param_loader = init_config(config_path)
        typer.echo(json.dumps(param_loader.get_raw_config(), indent=2))

    except HealthPodError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
