"""Artifact deployment to the provisioned hosting resource."""

from .dispatcher import DeploymentDispatcher, TransferClient

__all__ = ['DeploymentDispatcher', 'TransferClient']
