# Everything that can end a payout run. `autopayout.run` turns these into a failed outcome.

class AutoPayoutError(Exception):
	pass

# Missing or unreadable account file, bad config file, no validators.
class ConfigError(AutoPayoutError):
	pass

# The keystore could not be decrypted with the given password.
class AuthError(AutoPayoutError):
	pass

class ChainConnectionError(AutoPayoutError):
	pass

# Sidecar answered, but with an error or with something we can't read.
class ChainQueryError(AutoPayoutError):
	pass

class InsufficientFundsError(AutoPayoutError):
	pass

# Signing or broadcasting the batch failed.
class SubmissionError(AutoPayoutError):
	pass
