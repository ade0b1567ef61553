# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Environment configuration for the relief core.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from relief.domain.eligibility import EligibilityRules
from relief.models.enums import WheelchairRule
from relief.services.notifications import DEFAULT_SIGNATURE


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


@dataclass
class ReliefSettings:
    """Settings read once at process start."""
    environment: str = 'development'
    mongodb_uri: str = 'mongodb://localhost:27017/barangay_relief_dev'
    mongodb_database: str = 'barangay_relief_dev'
    sms_gateway_url: Optional[str] = None
    sms_username: Optional[str] = None
    sms_password: Optional[str] = None
    sms_sender_signature: str = DEFAULT_SIGNATURE
    sms_timeout: int = 10
    wheelchair_rule: WheelchairRule = WheelchairRule.PWD_OR_IP
    allow_claims_on_distributed: bool = False
    eligibility_rules: EligibilityRules = field(init=False)

    def __post_init__(self):
        self.wheelchair_rule = WheelchairRule(self.wheelchair_rule)
        self.eligibility_rules = EligibilityRules(wheelchair_rule=self.wheelchair_rule)

    @classmethod
    def from_env(cls) -> "ReliefSettings":
        """Create settings from environment variables."""
        return cls(
            environment=os.getenv('ENVIRONMENT', 'development'),
            mongodb_uri=os.getenv('MONGODB_URI', 'mongodb://localhost:27017/barangay_relief_dev'),
            mongodb_database=os.getenv('MONGODB_DATABASE', 'barangay_relief_dev'),
            sms_gateway_url=os.getenv('SMS_GATEWAY_URL'),
            sms_username=os.getenv('SMS_USERNAME'),
            sms_password=os.getenv('SMS_PASSWORD'),
            sms_sender_signature=os.getenv('SMS_SENDER_SIGNATURE', DEFAULT_SIGNATURE),
            sms_timeout=int(os.getenv('SMS_TIMEOUT', '10')),
            wheelchair_rule=WheelchairRule(os.getenv('WHEELCHAIR_RULE', WheelchairRule.PWD_OR_IP.value).upper()),
            allow_claims_on_distributed=_env_bool('ALLOW_CLAIMS_ON_DISTRIBUTED')
        )
