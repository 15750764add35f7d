# container-service-extension
# Copyright (c) 2023 VMware, Inc. All Rights Reserved.
# SPDX-License-Identifier: BSD-2-Clause

import click
import yaml

from cse_cluster_manager.common.constants.shared_constants import AccessLevel
import cse_cluster_manager.common.utils.core_utils as utils
import cse_cluster_manager.common.utils.pyvcloud_utils as vcd_utils
import cse_cluster_manager.config.config_validator as config_validator
import cse_cluster_manager.config.sample_generator as sample_generator
from cse_cluster_manager.logging.logger import CLIENT_LOGGER
from cse_cluster_manager.logging.logger import CLIENT_WIRE_LOGGER
from cse_cluster_manager.logging.logger import configure_all_file_loggers
from cse_cluster_manager.logging.logger import NULL_LOGGER
from cse_cluster_manager.rde.backend.cluster_service import ClusterService
from cse_cluster_manager.rde.backend.convergence_poller import BackoffPolicy
from cse_cluster_manager.rde.backend.convergence_poller import ConvergencePoller  # noqa: E501
from cse_cluster_manager.rde.common.entity_service import DefEntityService
import cse_cluster_manager.rde.spec_builder as spec_builder

_ACCESS_LEVELS = {
    'ReadOnly': AccessLevel.READ_ONLY,
    'ReadWrite': AccessLevel.READ_WRITE,
    'FullControl': AccessLevel.FULL_CONTROL,
}


def _get_config(ctx):
    if 'config' not in ctx.obj:
        ctx.obj['config'] = config_validator.get_validated_config(
            ctx.obj['config_file_name'])
    return ctx.obj['config']


def _get_cluster_service(ctx) -> ClusterService:
    """Log in to VCD and build the cluster service used by the commands.

    A service already present in the context object is used as is.
    """
    if 'cluster_service' in ctx.obj:
        return ctx.obj['cluster_service']
    config = _get_config(ctx)
    client = vcd_utils.get_vcd_client(config['vcd'])
    ctx.call_on_close(client.logout)
    logger_wire = CLIENT_WIRE_LOGGER if config['logging']['wire_logging'] \
        else NULL_LOGGER
    cloudapi_client = vcd_utils.get_cloudapi_client_from_vcd_client(
        client, logger_debug=CLIENT_LOGGER, logger_wire=logger_wire)
    cluster_config = config['cluster']
    backoff = BackoffPolicy(
        initial_interval_seconds=cluster_config['poll_initial_interval_seconds'],  # noqa: E501
        max_interval_seconds=cluster_config['poll_max_interval_seconds'],
        multiplier=cluster_config['poll_backoff_multiplier'])
    entity_service = DefEntityService(cloudapi_client)
    poller = ConvergencePoller(entity_service, backoff=backoff,
                               logger=CLIENT_LOGGER)
    ctx.obj['cluster_service'] = ClusterService(
        entity_service,
        rde_version=cluster_config['rde_version'],
        poller=poller,
        logger=CLIENT_LOGGER,
        site=vcd_utils.get_site_url(config['vcd']['host']))
    return ctx.obj['cluster_service']


def _get_operations_timeout_minutes(ctx):
    if 'operations_timeout_minutes' in ctx.obj:
        return ctx.obj['operations_timeout_minutes']
    return _get_config(ctx)['cluster']['operations_timeout_minutes']


def _handle_error(ctx, err):
    CLIENT_LOGGER.error(str(err), exc_info=True)
    utils.ConsoleMessagePrinter().error(str(err))
    ctx.exit(1)


def _print_yaml(data):
    click.echo(yaml.safe_dump(data, default_flow_style=False,
                              sort_keys=False))


@click.group(name='cse-cluster',
             short_help='Manage Kubernetes clusters in VMware Cloud Director')
@click.option(
    '-c',
    '--config',
    'config_file_name',
    envvar='CSE_CLUSTER_CONFIG',
    default='config.yaml',
    show_default=True,
    metavar='CONFIG_FILE_NAME',
    help='Config file to use (or set env var CSE_CLUSTER_CONFIG)')
@click.pass_context
def cli(ctx, config_file_name):
    """Manage Kubernetes clusters in VMware Cloud Director.

\b
Clusters are described by a specification file, see 'cse-cluster sample'.
Commands wait until the cluster has converged or the operations timeout
elapses. A timeout does not cancel the operation.
    """
    configure_all_file_loggers()
    ctx.ensure_object(dict)
    ctx.obj.setdefault('config_file_name', config_file_name)


@cli.command('sample', short_help='Generate sample config and cluster specification')  # noqa: E501
@click.pass_context
@click.option(
    '-o',
    '--output',
    'output',
    type=click.Choice(['config', 'cluster']),
    default='config',
    show_default=True,
    help="'config' prints a sample config file, 'cluster' a sample cluster "
         "specification")
def sample(ctx, output):
    """Generate sample config and cluster specification.

\b
Examples
    cse-cluster sample > config.yaml
        Generate a sample config file.
\b
    cse-cluster sample -o cluster > cluster.yaml
        Generate a sample cluster specification.
    """
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    if output == 'cluster':
        click.echo(sample_generator.generate_sample_cluster_spec_text())
    else:
        click.echo(sample_generator.generate_sample_config_text())


@cli.command('apply', short_help='Create a cluster or update an existing one')
@click.pass_context
@click.option(
    '-f',
    '--file',
    'cluster_config_file_path',
    required=True,
    type=click.Path(exists=True),
    metavar='CLUSTER_SPEC_FILE',
    help='Cluster specification file')
@click.option(
    '-i',
    '--id',
    'cluster_id',
    default=None,
    metavar='CLUSTER_ID',
    help='Id of the cluster to update, a new cluster is created if not set')
def apply(ctx, cluster_config_file_path, cluster_id):
    """Create a cluster or update an existing one.

\b
Only machine counts, autoscaler bounds, the set of worker pools, auto
repair and node health check can be updated. Any other change is rejected
and requires a new cluster.
\b
Examples
    cse-cluster apply -f cluster.yaml
        Create a cluster.
\b
    cse-cluster apply -f cluster.yaml --id urn:vcloud:entity:vmware:capvcdCluster:1234
        Update the cluster.
    """  # noqa: E501
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    console = utils.ConsoleMessagePrinter()
    try:
        desired = config_validator.get_validated_cluster_spec(
            cluster_config_file_path,
            default_timeout_minutes=_get_operations_timeout_minutes(ctx))
        cluster_service = _get_cluster_service(ctx)
        if cluster_id:
            console.info(f"Updating cluster '{cluster_id}'")
            observed = cluster_service.update_cluster(cluster_id, desired)
        else:
            console.info(f"Creating cluster '{desired.name}'")
            handle = cluster_service.create_cluster(desired)
            cluster_id = handle.id
            observed = handle.observed_state
        console.general(f"Cluster '{cluster_id}' is "
                        f"{observed.phase.value}")
    except Exception as err:
        _handle_error(ctx, err)


@cli.command('info', short_help='Display the state of a cluster')
@click.pass_context
@click.argument('cluster_id', metavar='CLUSTER_ID')
def info(ctx, cluster_id):
    """Display the state of a cluster as reported by VMware Cloud Director."""
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    try:
        observed = _get_cluster_service(ctx).read_cluster(cluster_id)
        _print_yaml(observed.to_display_dict())
    except Exception as err:
        _handle_error(ctx, err)


@cli.command('config', short_help='Display the specification of a cluster')
@click.pass_context
@click.argument('cluster_id', metavar='CLUSTER_ID')
def config(ctx, cluster_id):
    """Display the specification of a cluster.

The output can be edited and passed to 'apply --id'. The API token used
to create the cluster is not part of it.
    """
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    try:
        desired = _get_cluster_service(ctx).read_cluster_configuration(
            cluster_id)
        _print_yaml(spec_builder.to_document(desired))
    except Exception as err:
        _handle_error(ctx, err)


@cli.command('kubeconfig', short_help='Display the kubeconfig of a cluster')
@click.pass_context
@click.argument('cluster_id', metavar='CLUSTER_ID')
def kubeconfig(ctx, cluster_id):
    """Display the kubeconfig of a provisioned cluster.

\b
Examples
    cse-cluster kubeconfig urn:vcloud:entity:vmware:capvcdCluster:1234 > kubeconfig.yaml
    """  # noqa: E501
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    try:
        observed = _get_cluster_service(ctx).read_cluster(cluster_id)
        if not observed.kubeconfig:
            phase = observed.phase.value if observed.phase else 'unknown'
            raise ValueError(f"Kubeconfig of cluster '{cluster_id}' is not "
                             f"available, cluster phase: {phase}")
        click.echo(observed.kubeconfig)
    except Exception as err:
        _handle_error(ctx, err)


@cli.command('delete', short_help='Delete a cluster')
@click.pass_context
@click.argument('cluster_id', metavar='CLUSTER_ID')
@click.confirmation_option(prompt='Are you sure you want to delete the '
                                  'cluster?')
def delete(ctx, cluster_id):
    """Delete a cluster and wait until it is gone."""
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    console = utils.ConsoleMessagePrinter()
    try:
        console.info(f"Deleting cluster '{cluster_id}'")
        _get_cluster_service(ctx).delete_cluster(
            cluster_id,
            operations_timeout_minutes=_get_operations_timeout_minutes(ctx))
        console.general(f"Cluster '{cluster_id}' is deleted")
    except Exception as err:
        _handle_error(ctx, err)


@cli.command('share', short_help='Share a cluster with users or groups')
@click.pass_context
@click.argument('cluster_id', metavar='CLUSTER_ID')
@click.option(
    '-m',
    '--member',
    'member_ids',
    required=True,
    multiple=True,
    metavar='MEMBER_ID',
    help='urn of a user or group, can be repeated')
@click.option(
    '-a',
    '--access-level',
    'access_level',
    type=click.Choice(list(_ACCESS_LEVELS.keys())),
    default='ReadOnly',
    show_default=True,
    help='Access level granted to the members')
def share(ctx, cluster_id, member_ids, access_level):
    """Share a cluster with users or groups.

\b
Examples
    cse-cluster share urn:vcloud:entity:vmware:capvcdCluster:1234 -m urn:vcloud:user:5678 -a ReadWrite
    """  # noqa: E501
    CLIENT_LOGGER.debug(f'Executing command: {ctx.command_path}')
    try:
        _get_cluster_service(ctx).share_cluster(
            cluster_id, list(member_ids),
            access_level=_ACCESS_LEVELS[access_level])
        utils.ConsoleMessagePrinter().general(
            f"Cluster '{cluster_id}' is shared with {', '.join(member_ids)}")
    except Exception as err:
        _handle_error(ctx, err)


if __name__ == "__main__":
    cli()
