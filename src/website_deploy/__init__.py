"""Provision static hosting for a cloud environment and deploy a built site to it.

Quick start::

    from website_deploy import CloudClient, DeploySettings, WebsiteOrchestrator

    settings = DeploySettings.from_env()
    async with CloudClient(
        bearer_token=settings.cloud_api_token,
        base_url=settings.cloud_api_url,
    ) as client:
        orchestrator = WebsiteOrchestrator.for_cloud_client(
            client,
            settings=settings,
            inputs={'cloudPath': '/app/', 'buildCommand': 'npm run build'},
        )
        outcome = await orchestrator.run()
        print(outcome.url)
"""

from .cloud.client import CloudClient
from .errors import (
    BuildCommandError,
    ConfigError,
    DeploymentError,
    EnvironmentNotFound,
    InvalidPhaseTransition,
    ProvisioningError,
    UnsupportedBillingMode,
    WebsiteDeployError,
)
from .models import Artifact, DeploymentOutcome, DeployResult, HostingResource
from .orchestrator import WebsiteOrchestrator, site_url
from .settings import DeploySettings, WebsiteInputs, resolve_inputs

__all__ = [
    'Artifact',
    'BuildCommandError',
    'CloudClient',
    'ConfigError',
    'DeployResult',
    'DeploySettings',
    'DeploymentError',
    'DeploymentOutcome',
    'EnvironmentNotFound',
    'HostingResource',
    'InvalidPhaseTransition',
    'ProvisioningError',
    'UnsupportedBillingMode',
    'WebsiteDeployError',
    'WebsiteInputs',
    'WebsiteOrchestrator',
    'resolve_inputs',
    'site_url',
]
