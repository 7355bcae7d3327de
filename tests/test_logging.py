import json
import logging

from market_maker.utils import get_logger
from market_maker.utils.log_formatter import ColoredFormatter, JsonFormatter


def test_bound_fields_reach_the_record(caplog):
    logger = get_logger('market_maker.tests').bind(wallet_id='w1')

    with caplog.at_level(logging.INFO):
        logger.log_trade({'type': 'buy', 'amount': 0.1, 'success': True}, msg="Buy executed")

    record = caplog.records[-1]
    assert record.getMessage() == "Buy executed"
    assert record.category == 'TRADING'
    assert record.wallet_id == 'w1'
    assert record.trade_data['type'] == 'buy'


def test_balance_events_default_to_warning(caplog):
    logger = get_logger('market_maker.tests')

    with caplog.at_level(logging.INFO):
        logger.log_balance_event({'balance': 0.01, 'required': 0.02})

    assert caplog.records[-1].levelno == logging.WARNING
    assert caplog.records[-1].category == 'BALANCE'


def test_json_formatter_includes_category_and_data(caplog):
    logger = get_logger('market_maker.tests').bind(wallet_id='w1')

    with caplog.at_level(logging.INFO):
        with logger.correlation_context('cycle-1'):
            logger.log_cycle_event({'event_type': 'cycle_completed', 'cycles_completed': 2})

    payload = json.loads(JsonFormatter().format(caplog.records[-1]))
    assert payload['level'] == 'INFO'
    assert payload['category'] == 'BOT'
    assert payload['correlation_id'] == 'cycle-1'
    assert payload['data']['wallet_id'] == 'w1'
    assert payload['data']['cycle_data']['cycles_completed'] == 2


def test_colored_formatter_without_colors_is_plain(caplog):
    logger = get_logger('market_maker.tests')

    with caplog.at_level(logging.INFO):
        logger.log_recycle_event({'wallet_id': 'w1'}, msg="Recycling wallet")

    output = ColoredFormatter(use_colors=False).format(caplog.records[-1])
    assert "Recycling wallet" in output
    assert "\x1b[" not in output

