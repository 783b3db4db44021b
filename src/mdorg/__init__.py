"""
Incremental Markdown to Org conversion.

This package converts Markdown to Org markup either in one pass or as a stream of
chunks arriving from a producer such as a language model, emitting only output
that will never need to change.
"""

from mdorg.conversion_session import ConversionSession
from mdorg.mdorg_exceptions import (
    MdOrgError,
    MdOrgProducerError,
    MdOrgSessionError,
    MdOrgSettingsError,
)
from mdorg.mdorg_rule_engine import MdOrgRuleEngine, convert_markdown_to_org
from mdorg.mdorg_scratch_buffer import MdOrgScratchBuffer
from mdorg.mdorg_session_manager import MdOrgSessionEvent, MdOrgSessionManager
from mdorg.mdorg_settings import MdOrgSettings
from mdorg.mdorg_stream import convert_stream
from mdorg.mdorg_types import (
    FenceKind,
    FenceState,
    Hold,
    MdOrgStep,
    OrgMarkup,
    Pass,
    Rewrite,
)

__all__ = [
    # Exceptions
    'MdOrgError',
    'MdOrgSessionError',
    'MdOrgSettingsError',
    'MdOrgProducerError',
    # Types
    'FenceKind',
    'FenceState',
    'Hold',
    'MdOrgStep',
    'OrgMarkup',
    'Pass',
    'Rewrite',
    # Core classes
    'ConversionSession',
    'MdOrgRuleEngine',
    'MdOrgScratchBuffer',
    'MdOrgSessionEvent',
    'MdOrgSessionManager',
    'MdOrgSettings',
    'convert_markdown_to_org',
    'convert_stream',
]
