#%% INFO
# Find unclaimed staking rewards for a set of validators and turn them into one batch of
# `staking.payoutStakers` calls.
#
from typing import NamedTuple, Optional

# Rewards can only be claimed for this many eras before the active one.
HISTORY_DEPTH = 84

class PayoutTransaction(NamedTuple):
	validator: str
	era: int

class Outcome(NamedTuple):
	status: str # 'submitted', 'no_op' or 'failed'
	message: str
	tx_hash: Optional[str] = None
	batch: tuple = ()

	@property
	def exit_code(self) -> int:
		return 1 if self.status == 'failed' else 0

# Eras whose rewards can still be claimed, oldest first. Clamps at era 0 on young chains.
def scan_window(active_era: int) -> range:
	return range(max(active_era - HISTORY_DEPTH, 0), active_era)

# Scan the claim window of each validator and collect a payout for every era where it earned
# points and has not been paid yet.
#
# `chain` needs `get_claimed_rewards(validator)` and `get_era_reward_points(era)`. Reward points
# don't depend on the validator, so each era is read at most once per call. Reads are
# sequential; the first failing read raises and nothing is returned.
#
# `report`, if given, is called once per validator with its claimed eras and the eras added to
# the batch.
#
# The batch is ordered by validator (input order), then by era.
def compute_batch(active_era: int, validators, chain, report=None) -> list:
	window = scan_window(active_era)
	era_points = {}
	batch = []

	for validator in validators:
		claimed = chain.get_claimed_rewards(validator)
		unclaimed = []
		for era in window:
			if era not in era_points:
				era_points[era] = chain.get_era_reward_points(era)
			if validator in era_points[era] and era not in claimed:
				batch.append(PayoutTransaction(validator, era))
				unclaimed.append(era)
		if report:
			report(validator, sorted(claimed), unclaimed)

	return batch

