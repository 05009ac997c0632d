"""
Models for toolsmith.
"""
from toolsmith.api.models.enums import AccessTier, DeploymentStatus, FieldType
from toolsmith.api.models.entitlement import Package, UserPackage, UsageEvent
from toolsmith.api.models.project import Project
from toolsmith.api.models.step import Step
from toolsmith.api.models.field import Field, Choice
from toolsmith.api.models.deployment import Deployment
from toolsmith.api.models.tool_session import ToolSession, Response
from toolsmith.api.models.ai_config import AIConfigVersion
__all__ = [
    'AccessTier',
    'DeploymentStatus',
    'FieldType',
    'Project',
    'Step',
    'Field',
    'Choice',
    'Deployment',
    'ToolSession',
    'Response',
    'Package',
    'UserPackage',
    'UsageEvent',
    'AIConfigVersion',
]
