from loguru import logger

from secret_santa.core.logging import setup_logging


def test_file_sink_records_bound_fields(tmp_path):
    log_path = tmp_path / "santa.log"
    setup_logging("WARNING", str(log_path))
    try:
        logger.bind(list_id="abc123").debug("List generated")
    finally:
        logger.remove()

    text = log_path.read_text()
    assert "List generated" in text
    assert "abc123" in text
