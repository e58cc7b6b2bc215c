import asyncio

from pathlib import Path

import click

from rich.console import Console, Group
from rich.table import Table as RichTable
from rich.traceback import install as install_traceback

from netweave.capabilities import JsonFileKeyValueStore, LocalFile
from netweave.environment import Environment, set_current_env
from netweave.errors import NetweaveError
from netweave.log import configure_logging
from netweave.registry import ModelRegistry


console = Console()
install_traceback(show_locals=False, word_wrap=True, console=console)


class Context:
    def __init__(self, store: Path):
        self.store = store

    def registry(self) -> ModelRegistry:
        return ModelRegistry(storage=JsonFileKeyValueStore(self.store))


@click.group()
@click.option('--env', type=click.Choice([env.value for env in Environment]), default='development', help='Environment to use.')
@click.option('--store', type=click.Path(dir_okay=False, path_type=Path), default=Path("netweave_models.json"), help='JSON file the models are kept in.')
@click.pass_context
def cli(ctx: click.Context, env: str, store: Path) -> None:
    """netweave: in-memory network modelling over tabular data."""
    set_current_env(env)
    configure_logging()
    ctx.obj = Context(store)


@cli.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--limit', type=int, default=10, show_default=True, help='Rows to show.')
@click.option('--skip-size-check', is_flag=True, help='Load files above the configured size limit.')
@click.option('--save', 'save_as', default=None, help='Keep the ingested data as a new model with this name.')
@click.pass_obj
def inspect(ctx: Context, path: Path, limit: int, skip_size_check: bool, save_as: str | None) -> None:
    """Ingest PATH as a static table and show its attributes and first rows."""
    registry = ctx.registry()
    model = registry.create_model(name=save_as or path.name)

    async def _load():
        class_obj = await model.add_file_as_static_table(LocalFile(path), skip_size_check=skip_size_check)
        table = class_obj.table
        rows = [item async for item in table.iterate(limit=limit)]
        return table, rows, await table.count_rows()

    try:
        table, rows, total = asyncio.run(_load())
    except NetweaveError as e:
        registry.delete_model(model.model_id)
        raise click.ClickException(str(e))

    attributes = table.attributes
    attribute_table = RichTable(title=f"Attributes of {table.name}")
    attribute_table.add_column("Name")
    attribute_table.add_column("Expected")
    attribute_table.add_column("Observed")
    for name, details in table.get_attribute_details().items():
        attribute_table.add_row(name, "yes" if details.expected else "", "yes" if details.observed else "")

    row_table = RichTable(title=f"First {len(rows)} of {total} rows")
    row_table.add_column("index")
    for name in attributes:
        row_table.add_column(name)
    for item in rows:
        row_table.add_row(item.index, *[str(item.row.get(name, "")) for name in attributes])

    console.print(Group(attribute_table, row_table), justify="left")

    if save_as is None:
        registry.delete_model(model.model_id)
    else:
        model.flush_updates()
        console.log(f"Saved as model {model.model_id} in {ctx.store}")


@cli.group()
def models() -> None:
    """Manage stored models."""


@models.command("list")
@click.pass_obj
def list_models(ctx: Context) -> None:
    """List the stored models."""
    registry = ctx.registry()
    table = RichTable(title=f"Models in {ctx.store}")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Tables")
    table.add_column("Classes")
    for model in registry.models.values():
        table.add_row(model.model_id, model.name, str(len(model.tables)), str(len(model.classes)))
    console.print(table)


@models.command()
@click.argument('model_id')
@click.pass_obj
def schema(ctx: Context, model_id: str) -> None:
    """Show the classes and table derivations of MODEL_ID."""
    registry = ctx.registry()
    if (model := registry.models.get(model_id)) is None:
        raise click.ClickException(f"No model named {model_id}")

    class_table = RichTable(title="Classes")
    class_table.add_column("Id")
    class_table.add_column("Type")
    class_table.add_column("Name")
    class_table.add_column("Table")
    for class_obj in model.classes.values():
        class_table.add_row(class_obj.class_id, class_obj.type, class_obj.class_name, class_obj.table_id)

    graph = model.get_table_dependency_graph()
    link_table = RichTable(title="Table derivations")
    link_table.add_column("Parent")
    link_table.add_column("Derived")
    for link in graph.table_links:
        link_table.add_row(graph.tables[link.source]["table_id"], graph.tables[link.target]["table_id"])

    console.print(Group(class_table, link_table), justify="left")


@models.command()
@click.argument('model_id', required=False)
@click.option('--all', 'delete_all', is_flag=True, help='Delete every stored model.')
@click.pass_obj
def delete(ctx: Context, model_id: str | None, delete_all: bool) -> None:
    """Delete MODEL_ID (or every model with --all)."""
    registry = ctx.registry()
    if delete_all:
        registry.delete_all_models()
        console.log("Deleted all models")
        return
    if model_id is None:
        raise click.UsageError("Give a MODEL_ID or --all")
    try:
        registry.delete_model(model_id)
    except NetweaveError as e:
        raise click.ClickException(str(e))
    console.log(f"Deleted model {model_id}")


if __name__ == "__main__":
    cli()
