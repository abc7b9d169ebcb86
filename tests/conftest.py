import json

import pytest

from tests.fakes import SIGNER

@pytest.fixture
def account_file(tmp_path):
	path = tmp_path / 'account.json'
	path.write_text(json.dumps({
		'address': SIGNER,
		'encoded': '0x00',
		'encoding': {'content': ['pkcs8', 'sr25519'], 'type': ['scrypt', 'xsalsa20-poly1305'], 'version': '3'},
		'meta': {'name': 'payouts'},
	}))
	return str(path)

@pytest.fixture
def fake_keypair(monkeypatch):
	signer = object()
	monkeypatch.setattr('autopayout.load_keypair', lambda account, password: signer)
	return signer
