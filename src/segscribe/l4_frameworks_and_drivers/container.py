"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from segscribe.l1_entities.config import AppConfig
from segscribe.l2_use_cases.ports.audio_source import AudioSource
from segscribe.l2_use_cases.ports.recognizer import Recognizer
from segscribe.l2_use_cases.ports.ticker import Ticker
from segscribe.l2_use_cases.transcription_orchestrator import TranscriptionOrchestrator
from segscribe.l3_interface_adapters.gateways.sounddevice_audio_source import SounddeviceAudioSource
from segscribe.l3_interface_adapters.gateways.subprocess_whisper_recognizer import SubprocessWhisperRecognizer
from segscribe.l3_interface_adapters.gateways.threading_ticker import ThreadingTicker
from segscribe.l3_interface_adapters.gateways.whisper_recognizer import load_first_available
from segscribe.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        audio_source: AudioSource | None = None,
        recognizer: Recognizer | None = None,
        ticker: Ticker | None = None,
    ) -> None:
        self.config = config
        # The subprocess reply timeout is a backstop; the orchestrator enforces the real limit.
        self.recognizer: Recognizer = recognizer or SubprocessWhisperRecognizer(
            request_timeout=config.pipeline.recognizer_timeout * 2,
        )
        self.audio_source: AudioSource = audio_source or SounddeviceAudioSource()
        self.ticker: Ticker = ticker or ThreadingTicker()
        self.model_name = ''

        self.orchestrator = TranscriptionOrchestrator(
            recognizer=self.recognizer,
            config=config.pipeline,
            language=config.recognizer.language,
            audio_source=self.audio_source,
            ticker=self.ticker,
        )

    def load_model(self) -> str:
        """Load the configured model, falling back through the candidates. Blocking."""
        self.model_name = load_first_available(self.recognizer, self.config.recognizer.model_candidates())
        return self.model_name

    def close(self) -> None:
        self.orchestrator.close()
        self.recognizer.close()

    @staticmethod
    def config_loader() -> YamlConfigLoader:
        return YamlConfigLoader()
