# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tracing and logging setup for the relief core.

Spans from every service operation go to the console in development and to
an OTLP collector in staging and production.
"""

import os
import logging
from typing import List, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

logger = logging.getLogger(__name__)

SERVICE_NAME = 'barangay-relief-core'

SAMPLING_RATES = {
    'production': 0.1,
    'staging': 0.5
}

LOG_LEVELS = {
    'production': logging.WARNING,
    'staging': logging.INFO,
    'development': logging.DEBUG
}


def sampler_for(environment: str) -> TraceIdRatioBased:
    """Ratio sampler; every trace is kept outside staging and production."""
    return TraceIdRatioBased(SAMPLING_RATES.get(environment, 1.0))


def exporters_for(environment: str, otlp_endpoint: Optional[str]) -> List[SpanExporter]:
    """Span exporters for the environment."""
    if environment == 'production':
        if not otlp_endpoint:
            logger.warning("OTEL_EXPORTER_OTLP_ENDPOINT is not set, spans will not be exported")
            return []
        api_key = os.getenv('OTEL_API_KEY', '')
        return [OTLPSpanExporter(endpoint=otlp_endpoint, headers={"Authorization": f"Bearer {api_key}"})]

    if environment == 'staging':
        return [OTLPSpanExporter(endpoint=otlp_endpoint or 'http://localhost:4317')]

    exporters = [ConsoleSpanExporter()]
    if otlp_endpoint:
        exporters.append(OTLPSpanExporter(endpoint=otlp_endpoint))
    return exporters


def setup_observability(environment: str = None) -> Optional[TracerProvider]:
    """
    Configure logging and, unless OTEL_ENABLED is false, the global tracer provider.

    Args:
        environment: Deployment environment, read from ENVIRONMENT when omitted

    Returns:
        TracerProvider: The installed provider, or None when tracing is disabled
    """
    environment = environment or os.getenv('ENVIRONMENT', 'development')
    setup_structured_logging(environment)

    if os.getenv('OTEL_ENABLED', 'true').lower() != 'true':
        return None

    tracer_provider = TracerProvider(
        sampler=sampler_for(environment),
        resource=Resource.create({
            "service.name": SERVICE_NAME,
            "service.version": os.getenv('SERVICE_VERSION', '1.0.0'),
            "deployment.environment": environment
        })
    )
    for exporter in exporters_for(environment, os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')):
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter, max_export_batch_size=512))

    trace.set_tracer_provider(tracer_provider)
    logger.info(f"Tracing configured for {SERVICE_NAME} ({environment})")
    return tracer_provider


def setup_structured_logging(environment: str) -> None:
    """Root handler plus per-library levels."""
    logging.basicConfig(
        level=LOG_LEVELS.get(environment, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Keep business events, drop driver and HTTP chatter
        for name in ('urllib3', 'requests', 'pymongo'):
            logging.getLogger(name).setLevel(logging.WARNING)
    elif environment == 'development':
        logging.getLogger('relief').setLevel(logging.DEBUG)
        logging.getLogger('pymongo').setLevel(logging.INFO)
