"""Tests for WhisperRecognizer and model fallback — patches pywhispercpp Model."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from segscribe.l1_entities.errors import DecodeError, EngineBusyError, EngineUnavailableError
from segscribe.l3_interface_adapters.gateways.whisper_recognizer import WhisperRecognizer, load_first_available
from tests.conftest import FakeRecognizer

MODULE = 'segscribe.l3_interface_adapters.gateways.whisper_recognizer'


def _segment(text: str) -> MagicMock:
    seg = MagicMock()
    seg.text = text
    return seg


@pytest.fixture
def no_fd_redirect():
    with patch(f'{MODULE}._suppress_c_stdout', return_value=MagicMock()):
        yield


@pytest.mark.usefixtures('no_fd_redirect')
class TestWhisperRecognizer:
    @patch(f'{MODULE}.Model')
    def test_load_model(self, mock_model_cls):
        recognizer = WhisperRecognizer()
        recognizer.load_model('base')
        mock_model_cls.assert_called_once_with('base', print_progress=False, print_realtime=False)

    @patch(f'{MODULE}.Model', side_effect=RuntimeError('download failed'))
    def test_load_failure_is_engine_unavailable(self, _mock_model_cls):
        with pytest.raises(EngineUnavailableError, match='download failed'):
            WhisperRecognizer().load_model('base')

    @patch(f'{MODULE}.Model')
    def test_transcribe_joins_segment_texts(self, mock_model_cls):
        model = mock_model_cls.return_value
        model.transcribe.return_value = [_segment(' 你好 '), _segment(''), _segment('世界')]
        recognizer = WhisperRecognizer()
        recognizer.load_model('base')

        assert recognizer.transcribe(np.zeros(100, dtype=np.float32), 'zh') == '你好 世界'
        assert model.transcribe.call_args.kwargs['language'] == 'zh'

    @patch(f'{MODULE}.Model')
    def test_engine_failure_is_decode_error(self, mock_model_cls):
        mock_model_cls.return_value.transcribe.side_effect = RuntimeError('bad input')
        recognizer = WhisperRecognizer()
        recognizer.load_model('base')
        with pytest.raises(DecodeError, match='bad input'):
            recognizer.transcribe(np.zeros(100, dtype=np.float32), 'zh')

    def test_transcribe_before_load(self):
        with pytest.raises(EngineUnavailableError):
            WhisperRecognizer().transcribe(np.zeros(10, dtype=np.float32), 'zh')

    @patch(f'{MODULE}.Model')
    def test_concurrent_call_is_busy(self, mock_model_cls):
        entered = threading.Event()
        release = threading.Event()

        def slow(*_args, **_kwargs):
            entered.set()
            release.wait(timeout=5)
            return [_segment('done')]

        mock_model_cls.return_value.transcribe.side_effect = slow
        recognizer = WhisperRecognizer()
        recognizer.load_model('base')

        results: list[str] = []
        worker = threading.Thread(
            target=lambda: results.append(recognizer.transcribe(np.zeros(10, dtype=np.float32), 'zh'))
        )
        worker.start()
        try:
            assert entered.wait(timeout=2)
            with pytest.raises(EngineBusyError):
                recognizer.transcribe(np.zeros(10, dtype=np.float32), 'zh')
        finally:
            release.set()
            worker.join(timeout=5)
        assert results == ['done']

    @patch(f'{MODULE}.Model')
    def test_close_releases_model(self, _mock_model_cls):
        recognizer = WhisperRecognizer()
        recognizer.load_model('base')
        recognizer.close()
        assert recognizer._model is None


class TestLoadFirstAvailable:
    def test_first_candidate_wins(self):
        fake = FakeRecognizer()
        assert load_first_available(fake, ['base-q8_0', 'base']) == 'base-q8_0'
        assert fake.load_model_calls == ['base-q8_0']

    def test_falls_back(self):
        fake = FakeRecognizer()
        fake.unavailable_models = {'base-q8_0'}
        assert load_first_available(fake, ['base-q8_0', 'base']) == 'base'
        assert fake.load_model_calls == ['base-q8_0', 'base']

    def test_none_available(self):
        fake = FakeRecognizer()
        fake.unavailable_models = {'a', 'b'}
        with pytest.raises(EngineUnavailableError, match='a: .*b: '):
            load_first_available(fake, ['a', 'b'])

    def test_no_candidates(self):
        with pytest.raises(EngineUnavailableError, match='no candidates'):
            load_first_available(FakeRecognizer(), [])
