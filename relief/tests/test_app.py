# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for settings and service wiring.
"""

import pytest
from unittest.mock import patch

from relief.app import create_core, create_store
from relief.config import ReliefSettings
from relief.models.enums import WheelchairRule
from relief.observability.config import exporters_for, sampler_for, setup_observability
from relief.scripts import create_indexes
from relief.services.memory import InMemoryReliefStore
from relief.services.mongodb import MongoReliefStore
from relief.services.notifications import SMSGatewayClient


class TestReliefSettings:
    """Environment configuration."""

    def test_defaults(self, monkeypatch):
        for name in ('WHEELCHAIR_RULE', 'ALLOW_CLAIMS_ON_DISTRIBUTED', 'SMS_GATEWAY_URL', 'SMS_SENDER_SIGNATURE'):
            monkeypatch.delenv(name, raising=False)

        settings = ReliefSettings.from_env()

        assert settings.wheelchair_rule == WheelchairRule.PWD_OR_IP
        assert settings.allow_claims_on_distributed is False
        assert settings.sms_gateway_url is None
        assert settings.sms_sender_signature == "MSWDO-GLAN CBDS"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('ENVIRONMENT', 'production')
        monkeypatch.setenv('WHEELCHAIR_RULE', 'pwd_and_ip')
        monkeypatch.setenv('ALLOW_CLAIMS_ON_DISTRIBUTED', 'true')
        monkeypatch.setenv('SMS_GATEWAY_URL', 'https://sms.example/message')
        monkeypatch.setenv('SMS_TIMEOUT', '5')

        settings = ReliefSettings.from_env()

        assert settings.environment == 'production'
        assert settings.eligibility_rules.wheelchair_rule == WheelchairRule.PWD_AND_IP
        assert settings.allow_claims_on_distributed is True
        assert settings.sms_timeout == 5

    def test_invalid_wheelchair_rule(self, monkeypatch):
        monkeypatch.setenv('WHEELCHAIR_RULE', 'ANYONE')
        with pytest.raises(ValueError):
            ReliefSettings.from_env()


class TestCreateCore:
    """Service wiring."""

    def test_test_environment_uses_memory_store(self):
        assert isinstance(create_store(ReliefSettings(environment='test')), InMemoryReliefStore)

    @patch('relief.app.MongoDBService')
    def test_other_environments_use_mongodb(self, mock_service_class):
        store = create_store(ReliefSettings(environment='production', mongodb_database='relief'))

        assert isinstance(store, MongoReliefStore)
        mock_service_class.assert_called_once_with('mongodb://localhost:27017/barangay_relief_dev', 'relief')
        mock_service_class.return_value.create_indexes.assert_called_once()

    def test_services_share_store(self):
        settings = ReliefSettings(
            environment='test',
            sms_gateway_url='https://sms.example/message',
            sms_username='user',
            sms_password='secret',
            sms_sender_signature='BRGY POBLACION',
            allow_claims_on_distributed=True
        )

        core = create_core(settings)

        assert isinstance(core.notifications.gateway, SMSGatewayClient)
        assert core.notifications.gateway.enabled
        assert core.notifications.signature == 'BRGY POBLACION'
        assert core.claims.store is core.store
        assert core.schedules.store is core.store
        assert core.registrations.store is core.store
        assert core.claims.allow_claims_on_distributed is True


class TestObservability:
    """Tracing setup."""

    def test_disabled_tracing(self, monkeypatch):
        monkeypatch.setenv('OTEL_ENABLED', 'false')
        assert setup_observability('test') is None

    @patch('relief.observability.config.trace.set_tracer_provider')
    def test_development_tracing(self, mock_set_provider, monkeypatch):
        monkeypatch.setenv('OTEL_ENABLED', 'true')
        monkeypatch.delenv('OTEL_EXPORTER_OTLP_ENDPOINT', raising=False)

        provider = setup_observability('development')

        assert provider.resource.attributes['service.name'] == 'barangay-relief-core'
        mock_set_provider.assert_called_once_with(provider)

    @pytest.mark.parametrize("environment,rate", [
        ('production', 0.1),
        ('staging', 0.5),
        ('development', 1.0)
    ])
    def test_sampling_rate(self, environment, rate):
        assert sampler_for(environment).rate == rate

    def test_production_without_endpoint_exports_nothing(self):
        assert exporters_for('production', None) == []

    def test_development_exports_to_console(self):
        exporters = exporters_for('development', None)
        assert [type(e).__name__ for e in exporters] == ['ConsoleSpanExporter']


class TestCreateIndexesScript:
    """Index creation entry point."""

    @patch('relief.scripts.create_indexes.MongoDBService')
    def test_creates_indexes(self, mock_service_class):
        service = mock_service_class.return_value
        service.health_check.return_value = {'status': 'healthy', 'version': '7.0', 'database': 'relief'}

        assert create_indexes.main(ReliefSettings(environment='production')) == 0

        service.create_indexes.assert_called_once()
        service.close_connection.assert_called_once()

    @patch('relief.scripts.create_indexes.MongoDBService')
    def test_unhealthy_database(self, mock_service_class):
        service = mock_service_class.return_value
        service.health_check.return_value = {'status': 'unhealthy', 'error': 'timeout', 'database': 'relief'}

        assert create_indexes.main(ReliefSettings(environment='production')) == 1

        service.create_indexes.assert_not_called()
        service.close_connection.assert_called_once()
