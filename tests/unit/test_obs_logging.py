import json
import logging

from linkedup.obs import logging as obs_logging


def _record(**extra) -> logging.LogRecord:
	record = logging.makeLogRecord({"name": "linkedup.test", "levelno": logging.INFO, "levelname": "INFO", "msg": "profile_updated"})
	record.__dict__.update(extra)
	return record


def test_formatter_redacts_profile_fields_and_keeps_context():
	formatter = obs_logging.JSONLogFormatter()
	with obs_logging.log_context(request_id="req-1", user_id="u1"):
		line = formatter.format(_record(phone_number="555", lat=43.0, latency_ms=1.5, target="u2"))

	payload = json.loads(line)
	assert payload["event"] == "profile_updated"
	assert payload["request_id"] == "req-1"
	assert payload["user_id"] == "u1"
	assert payload["phone_number"] == "[redacted]"
	assert payload["lat"] == "[redacted]"
	assert payload["latency_ms"] == 1.5
	assert payload["target"] == "u2"
	assert obs_logging.current_request_id() is None


def test_scrub_clips_long_values():
	assert obs_logging.scrub("note", "x" * 300).endswith("...")
	assert obs_logging.scrub("ids", list(range(12)))[-1] == "+2 more"
	assert obs_logging.scrub("meta", {"text": "hello", "room": "a_b"}) == {"text": "[redacted]", "room": "a_b"}


def test_sampling_keeps_warnings():
	never = obs_logging.InfoSamplingFilter(rate=0.0)
	assert never.filter(_record()) is False

	warning = _record()
	warning.levelno = logging.WARNING
	assert never.filter(warning) is True
	assert obs_logging.InfoSamplingFilter(rate=1.0).filter(_record()) is True
