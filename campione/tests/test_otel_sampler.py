"""Tests for OpenTelemetry interop: the SDK sampler and span views over SDK spans."""

import pytest
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from campione.constants import (
    AUTO_KEEP,
    SAMPLING_AGENT_DECISION,
    SAMPLING_LIMIT_DECISION,
    SAMPLING_PRIORITY_KEY,
    SAMPLING_RULE_DECISION,
)
from campione.processors.priority_sampler import PrioritySampler
from campione.processors.rules_sampler import RulesSampler
from campione.processors.sampler import sampled_by_rate
from campione.processors.sampling_processor import SamplingSpanProcessor
from campione.processors.sampling_rule import service_rule
from campione.processors.trace_sampler import TraceSampler
from campione.tracer.otel_sampler import CampioneSampler
from campione.tracer.processor import SpanProcessor
from campione.tracer.span import Span
from campione.utils.helpers import MAX_UINT_64BITS


class RecordingProcessor(SpanProcessor):
    def __init__(self):
        self.spans = []

    def on_end(self, span):
        self.spans.append(span)


def make_provider(sampler=None, service="web", environment="prod"):
    exporter = InMemorySpanExporter()
    resource = Resource.create({"service.name": service, "deployment.environment": environment})
    kwargs = {"resource": resource}
    if sampler is not None:
        kwargs["sampler"] = sampler
    provider = TracerProvider(**kwargs)
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider, exporter


class TestCampioneSampler:
    def test_kept_span_records_sampling_tags(self):
        provider, exporter = make_provider(CampioneSampler(service="web", environment="prod"))
        tracer = provider.get_tracer(__name__)

        with tracer.start_as_current_span("query") as span:
            assert span.is_recording()

        finished = exporter.get_finished_spans()
        assert len(finished) == 1
        assert finished[0].attributes[SAMPLING_PRIORITY_KEY] == AUTO_KEEP
        assert finished[0].attributes[SAMPLING_AGENT_DECISION] == 1.0

    def test_rejected_span_is_dropped(self):
        trace_sampler = TraceSampler(rules_sampler=RulesSampler(rules=[service_rule("web", 0.0)]))
        provider, exporter = make_provider(CampioneSampler(trace_sampler, service="web"))
        tracer = provider.get_tracer(__name__)

        with tracer.start_as_current_span("query") as span:
            assert not span.is_recording()

        assert exporter.get_finished_spans() == ()

    def test_rule_tag_on_kept_span(self):
        trace_sampler = TraceSampler(rules_sampler=RulesSampler(rules=[service_rule("web", 1.0)]))
        provider, exporter = make_provider(CampioneSampler(trace_sampler, service="web"))

        with provider.get_tracer(__name__).start_as_current_span("query"):
            pass

        attributes = exporter.get_finished_spans()[0].attributes
        assert attributes[SAMPLING_RULE_DECISION] == 1.0
        assert SAMPLING_AGENT_DECISION not in attributes

    def test_decision_uses_lower_64_bits_of_trace_id(self):
        trace_sampler = TraceSampler(priority_sampler=PrioritySampler(default_rate=0.5))
        provider, _ = make_provider(CampioneSampler(trace_sampler, service="web"))
        tracer = provider.get_tracer(__name__)

        for _ in range(100):
            span = tracer.start_span("query")
            trace_id = span.get_span_context().trace_id
            assert span.is_recording() == sampled_by_rate(trace_id & MAX_UINT_64BITS, 0.5)
            span.end()

    def test_environment_selects_rate(self):
        priority_sampler = PrioritySampler()
        priority_sampler.update_table({"rate_by_service": {"service:web,env:staging": 0.0}})
        trace_sampler = TraceSampler(priority_sampler=priority_sampler)

        staging = CampioneSampler(trace_sampler, service="web", environment="staging")
        prod = CampioneSampler(trace_sampler, service="web", environment="prod")

        assert not staging.should_sample(None, 12345, "query").decision.is_sampled()
        assert prod.should_sample(None, 12345, "query").decision.is_sampled()

    def test_description(self):
        assert CampioneSampler(service="web", environment="prod").get_description() == (
            "CampioneSampler{service=web,env=prod}"
        )


class TestSpanFromOtel:
    @pytest.fixture
    def tracer(self):
        provider, _ = make_provider()
        return provider.get_tracer(__name__)

    def test_reads_resource_and_context(self, tracer):
        with tracer.start_as_current_span("query", attributes={"db.system": "postgres"}) as otel_span:
            view = Span.from_otel(otel_span)

            assert view.service == "web"
            assert view.environment == "prod"
            assert view.name == "query"
            assert view.trace_id == otel_span.get_span_context().trace_id & MAX_UINT_64BITS
            assert view.get_attribute("db.system") == "postgres"

    def test_explicit_service_wins(self, tracer):
        with tracer.start_as_current_span("query") as otel_span:
            view = Span.from_otel(otel_span, service="api", environment="dev")
            assert view.service == "api"
            assert view.environment == "dev"

    def test_attribute_writes_are_mirrored(self, tracer):
        with tracer.start_as_current_span("query") as otel_span:
            view = Span.from_otel(otel_span)
            view.set_attribute(SAMPLING_PRIORITY_KEY, AUTO_KEEP)
            assert otel_span.attributes[SAMPLING_PRIORITY_KEY] == AUTO_KEEP

    def test_ended_span_keeps_local_attributes(self, tracer):
        otel_span = tracer.start_span("query")
        otel_span.end()

        view = Span.from_otel(otel_span)
        view.set_attribute(SAMPLING_PRIORITY_KEY, AUTO_KEEP)
        assert view.get_attribute(SAMPLING_PRIORITY_KEY) == AUTO_KEEP
        assert SAMPLING_PRIORITY_KEY not in otel_span.attributes


class TestSamplingProcessorWithOtelSpans:
    def test_forwards_original_span(self):
        provider, _ = make_provider()
        otel_span = provider.get_tracer(__name__).start_span("query")
        otel_span.end()

        recorder = RecordingProcessor()
        SamplingSpanProcessor(recorder).on_end(otel_span)

        assert recorder.spans == [otel_span]

    def test_drops_by_resource_service(self):
        provider, _ = make_provider(service="noisy")
        otel_span = provider.get_tracer(__name__).start_span("query")
        otel_span.end()

        recorder = RecordingProcessor()
        trace_sampler = TraceSampler(rules_sampler=RulesSampler(rules=[service_rule("noisy", 0.0)]))
        processor = SamplingSpanProcessor(recorder, trace_sampler)
        processor.on_end(otel_span)

        assert recorder.spans == []
        assert processor.get_stats()["dropped_spans"] == 1


class TestSamplingProcessorOnProvider:
    def make_registered(self, service, trace_sampler=None):
        exporter = InMemorySpanExporter()
        provider = TracerProvider(resource=Resource.create({"service.name": service}))
        processor = SamplingSpanProcessor(SimpleSpanProcessor(exporter), trace_sampler)
        provider.add_span_processor(processor)
        return provider.get_tracer(__name__), processor, exporter

    def test_exported_span_carries_sampling_tags(self):
        tracer, processor, exporter = self.make_registered("web")

        with tracer.start_as_current_span("query"):
            pass

        finished = exporter.get_finished_spans()
        assert len(finished) == 1
        assert finished[0].attributes[SAMPLING_PRIORITY_KEY] == AUTO_KEEP
        assert finished[0].attributes[SAMPLING_AGENT_DECISION] == 1.0
        assert processor.get_stats() == {"kept_spans": 1, "dropped_spans": 0}

    def test_rejected_span_not_exported(self):
        trace_sampler = TraceSampler(rules_sampler=RulesSampler(rules=[service_rule("noisy", 0.0)]))
        tracer, processor, exporter = self.make_registered("noisy", trace_sampler)

        with tracer.start_as_current_span("query"):
            pass

        assert exporter.get_finished_spans() == ()
        assert processor.get_stats() == {"kept_spans": 0, "dropped_spans": 1}

    def test_rule_tags_reach_exported_span(self):
        trace_sampler = TraceSampler(rules_sampler=RulesSampler(rules=[service_rule("web", 1.0)]))
        tracer, _, exporter = self.make_registered("web", trace_sampler)

        with tracer.start_as_current_span("query"):
            pass

        attributes = exporter.get_finished_spans()[0].attributes
        assert attributes[SAMPLING_RULE_DECISION] == 1.0
        assert attributes[SAMPLING_LIMIT_DECISION] == 0.5

    def test_flush_and_shutdown_through_provider(self):
        tracer, processor, exporter = self.make_registered("web")
        with tracer.start_as_current_span("query"):
            pass

        assert processor.force_flush(1000)
        processor.shutdown()
        assert len(exporter.get_finished_spans()) == 1
