"""Provision and tear down an application on Azure Container Apps."""

__version__ = "0.1.0"
