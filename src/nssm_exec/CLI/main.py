"""
Command Line Interface for nssm-exec.
"""
import logging
import click
import yaml
from ..MANAGERS.batch_executor import BatchExecutor
from ..MANAGERS.nssm_invoker import NssmInvoker
from ..MANAGERS.operation_planner import OperationPlanner
from ..MANAGERS.report_mapper import ReportMapper
from ..MODELS.errors import ConfigError, PlanError
from ..MODELS.lifecycle import RequestedAction
from ..PARSERS.config_parser import ConfigParser
from ..RUNNERS.nssm_commands import NssmCommands
from ..UTILS.logging_setup import configure_logging
from ..UTILS.string_interpolation import build_context

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/nssm_exec.yml'
EXIT_USAGE = 2

@click.group(invoke_without_command=True)
@click.option('--conf', '-c', default=DEFAULT_CONFIG_PATH, show_default=True,
              help='YAML or TOML configuration describing the services')
@click.option('--log', '-l', 'log_config', default=None,
              help='Logging configuration file path (YAML, logging dictConfig format)')
@click.option('--verbose', '-v', is_flag=True, help='Log every manager command')
@click.option('--env-file', type=click.Path(exists=True, dir_okay=False), default=None,
              help='.env file with variables for ${VAR} placeholders')
@click.option('--manager', default=None, help='Override the NSSM executable path')
@click.option('--dry-run', is_flag=True, help='Print the planned manager commands without running them')
@click.pass_context
def cli(ctx, conf, log_config, verbose, env_file, manager, dry_run):
    """
    NSSM Exec - recreate or stop Windows services through NSSM.

    Runs `recreate` when no command is given.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(conf=conf, env_file=env_file, manager=manager, dry_run=dry_run)

    try:
        configure_logging(verbose=verbose, log_config_path=log_config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"Error: Unable to initialize logging from '{log_config}': {e}", err=True)
        ctx.exit(EXIT_USAGE)

    if ctx.invoked_subcommand is None:
        ctx.invoke(recreate)

@cli.command()
@click.pass_context
def recreate(ctx):
    """Stop, remove, reinstall and start every configured service."""
    ctx.exit(run_action(RequestedAction.RECREATE, ctx.obj))

@cli.command()
@click.pass_context
def stop(ctx):
    """Only stop the configured services."""
    ctx.exit(run_action(RequestedAction.STOP, ctx.obj))

def run_action(action: RequestedAction, options: dict) -> int:
    """
    Loads the configuration, plans the action and executes it.

    :param action: The requested action.
    :param options: Values collected by the cli group.
    :return: The process exit code.
    """
    try:
        parser = ConfigParser(build_context(options.get('env_file')))
        config = parser.parse(options['conf'])
        if options.get('manager'):
            config = config.with_manager_path(options['manager'])
        steps = OperationPlanner().plan(action, config)
    except (ConfigError, PlanError) as e:
        click.echo(f"Error: {e}", err=True)
        return EXIT_USAGE

    if options.get('dry_run'):
        for step in steps:
            for args in step.commands:
                click.echo(f"{step}: {config.manager_path} {' '.join(NssmCommands.redact(args))}")
        return 0

    logger.info("Running %s for %d service(s) using %s",
                action.value, len(config.services), config.manager_path)
    report = BatchExecutor(NssmInvoker(config)).execute(steps)

    mapper = ReportMapper()
    click.echo(mapper.summary(report), nl=False)
    code = mapper.exit_code(report)
    if code == 0:
        logger.info("Program completed!")
    else:
        logger.error("Unable to complete all nssm operations")
    return code

def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
