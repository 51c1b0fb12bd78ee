import logging
import sys
import os
from datetime import timedelta

# Ensure src is in python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from src.momentum.adapters.basic_normalizer import BasicVoteEventNormalizer
from src.momentum.adapters.clocks import FrozenTimeSource, SystemTimeSource
from src.momentum.adapters.synthetic_source import SyntheticVoteEventSource
from src.momentum.domain.derived_score import RankingMetric
from src.momentum.domain.timeframe import Timeframe
from src.momentum.services.momentum_engine import MomentumEngine
from src.momentum.services.momentum_ingestion import MomentumIngestionService


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    print("Initializing DEV momentum engine...")

    # 1. Infrastructure
    time_source = FrozenTimeSource(SystemTimeSource().now())
    source = SyntheticVoteEventSource(time_source, Timeframe.LAST_24_HOURS, seed=7)
    normalizer = BasicVoteEventNormalizer()

    # 2. Engine + pipeline
    engine = MomentumEngine(time_source=time_source, timeframe=Timeframe.LAST_24_HOURS)
    service = MomentumIngestionService(source, normalizer, engine)

    # 3. Cold start
    batch = service.ingest()
    print(f"Cold start: {batch.accepted} accepted, {batch.out_of_window} out of window, {len(engine)} entities")

    # 4. Live burst for one candidate
    for i in range(25):
        time_source.advance(timedelta(seconds=30))
        service.on_vote_update({
            "candidateId": "climate-policy-candidate-1",
            "topic": "Climate Policy",
            "timestamp": time_source.now(),
        })

    # 5. Read side
    print("Trending:")
    for score in engine.get_trending():
        print(
            f"  {score.entity_id:<36} M: {score.momentum:6.2f} | V: {score.velocity:6.2f} "
            f"| {score.momentum_class.value}"
        )

    print("Top predictions:")
    for score in engine.get_ranked(RankingMetric.PREDICTION, compact=True):
        print(f"  {score.entity_id:<36} next: {score.prediction:6.1f}  recent: {score.recent_percentage:5.1f}%")

    engine.shutdown()
    print("Dev run complete.")


if __name__ == "__main__":
    main()
