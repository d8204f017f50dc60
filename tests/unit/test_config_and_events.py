"""
Unit tests for settings loading, compile event logging and the progress log.
"""

from datetime import datetime

import pytest
from collabtex.contexts.rendering.progress import ProgressLevel, ProgressLine, ProgressLog
from collabtex.utils.config import ENV_OVERRIDES, load_settings
from collabtex.utils.event_logging import get_events_file, get_recent_events, log_compile_event


@pytest.fixture
def clean_env(monkeypatch):
    """Remove settings-related environment variables for the test."""
    for var in [*ENV_OVERRIDES, "COLLABTEX_CONFIG_PATH", "COLLABTEX_EVENTS_FILE"]:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestLoadSettings:
    """Tests for load_settings function."""

    @pytest.mark.unit
    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.editing.history_limit == 50
        assert settings.editing.entry_file == 'main.tex'
        assert settings.rendering.backend_module == 'collabtex.backends.pdflatex'
        assert settings.rendering.backend_load_retry == 'never'
        assert settings.rendering.compile_timeout_s == 60
        assert list(settings.rendering.output_names) == ['{stem}.pdf', 'output.pdf', 'output']

    @pytest.mark.unit
    def test_environment_overrides(self, clean_env):
        clean_env.setenv('COLLABTEX_COMPILE_TIMEOUT_S', '5')
        clean_env.setenv('COLLABTEX_BACKEND_LOAD_RETRY', 'once')

        settings = load_settings()

        assert settings.rendering.compile_timeout_s == 5
        assert settings.rendering.backend_load_retry == 'once'

    @pytest.mark.unit
    def test_explicit_overrides_win_over_environment(self, clean_env):
        clean_env.setenv('COLLABTEX_ENGINE_COMMAND', 'xelatex')

        settings = load_settings(overrides=['rendering.engine_command=lualatex'])

        assert settings.rendering.engine_command == 'lualatex'

    @pytest.mark.unit
    def test_custom_file_merged_over_defaults(self, clean_env, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        config_file.write_text('editing:\n  history_limit: 10\n', encoding='utf-8')

        settings = load_settings(config_path=config_file)

        assert settings.editing.history_limit == 10
        assert settings.rendering.engine_command == 'pdflatex'

    @pytest.mark.unit
    def test_config_path_from_environment(self, clean_env, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        config_file.write_text('editing:\n  entry_file: paper.tex\n', encoding='utf-8')
        clean_env.setenv('COLLABTEX_CONFIG_PATH', str(config_file))

        assert load_settings().editing.entry_file == 'paper.tex'

    @pytest.mark.unit
    def test_invalid_retry_policy(self, clean_env):
        with pytest.raises(ValueError, match='backend_load_retry'):
            load_settings(overrides=['rendering.backend_load_retry=always'])


class TestEventLogging:
    """Tests for compile event logging."""

    @pytest.mark.unit
    def test_disabled_without_env(self, clean_env):
        assert get_events_file() is None
        assert log_compile_event('compile_finished', entry='main.tex', source='test') is False
        assert get_recent_events() == []

    @pytest.mark.unit
    def test_events_appended_as_json_lines(self, clean_env, tmp_path):
        events_file = tmp_path / 'logs' / 'events.jsonl'
        clean_env.setenv('COLLABTEX_EVENTS_FILE', str(events_file))

        assert log_compile_event('compile_finished', entry='main.tex', source='test', status='succeeded')
        log_compile_event('backend_load_failed', entry='main.tex', source='test')

        assert events_file.exists()
        assert len(events_file.read_text(encoding='utf-8').splitlines()) == 2

        events = get_recent_events()
        assert [event['event_type'] for event in events] == ['compile_finished', 'backend_load_failed']
        assert events[0]['status'] == 'succeeded'
        assert 'timestamp' in events[0]

    @pytest.mark.unit
    def test_recent_events_filter_and_limit(self, clean_env, tmp_path):
        events_file = tmp_path / 'events.jsonl'
        clean_env.setenv('COLLABTEX_EVENTS_FILE', str(events_file))
        for index in range(5):
            log_compile_event('compile_finished', entry=f'{index}.tex', source='test')
        log_compile_event('other', entry='x.tex', source='test')
        with open(events_file, 'a', encoding='utf-8') as f:
            f.write('not json\n')

        recent = get_recent_events(n=2, event_type='compile_finished')

        assert [event['entry'] for event in recent] == ['3.tex', '4.tex']


class TestProgressLog:
    """Tests for the progress log sink."""

    @pytest.mark.unit
    def test_lines_in_order_with_levels(self):
        progress = ProgressLog()
        progress.info('one')
        progress.success('two')
        progress.warning('three')
        progress.error('four')

        assert len(progress) == 4
        assert progress.messages() == ['one', 'two', 'three', 'four']
        assert progress.messages(ProgressLevel.WARNING) == ['three']
        assert [line.level for line in progress] == list(ProgressLevel)

    @pytest.mark.unit
    def test_line_format(self):
        line = ProgressLine(timestamp=datetime(2026, 10, 19, 14, 3, 9), level=ProgressLevel.INFO, message='Ready')
        assert str(line) == '[14:03:09] Ready'

    @pytest.mark.unit
    def test_render_and_listeners(self):
        seen = []
        progress = ProgressLog(listeners=[seen.append])

        progress.add('hello', 'success')

        assert seen[0].level is ProgressLevel.SUCCESS
        assert progress.render().endswith('] hello')

    @pytest.mark.unit
    def test_lines_are_a_copy(self):
        progress = ProgressLog()
        progress.info('x')
        progress.lines.clear()
        assert len(progress) == 1
