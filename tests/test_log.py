import logging

from pocket_finance.log import ROOT_LOGGER_NAME, get_logger


def test_loggers_share_the_package_namespace():
    root = get_logger()
    child = get_logger('pocket_finance.ledger')
    outsider = get_logger('ledger_cli')

    assert root.name == ROOT_LOGGER_NAME
    assert child.name == 'pocket_finance.ledger'
    assert outsider.name == 'pocket_finance.ledger_cli'
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
