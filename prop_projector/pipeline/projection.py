"""
Projection service: trains models from game logs and serves combined projections.

Wires the feature extractor, trainer, model store, predictor and ensemble
combiner together. All collaborators are injected, so the service holds no
global state and can be built per process or per test.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..data.features.feature_engineering import ExtractorConfig, FeatureExtractor, TrainingSample
from ..data.loader import GameLogRepository
from ..data.reference import ReferenceTables, load_reference_tables
from ..data.validators import validate_feature_vector
from ..errors import ModelNotFoundError
from ..ml.regression.trainer import ModelTrainer, TrainingConfig
from ..models.game import GameContext, StatType
from ..models.projection import ProjectionRequest, ProjectionResult
from ..models.regression import GENERAL_SCOPE, ModelKey, Prediction, RegressionModel
from ..predictors.ensemble import EnsembleCombiner, EnsembleConfig
from ..predictors.regression import RegressionPredictor
from ..storage.model_store import JsonModelStore, ModelStore

logger = logging.getLogger(__name__)


@dataclass
class ProjectionConfig:
    """File locations and knobs for building a ProjectionService."""

    model_dir: str = "data/models"
    game_logs_path: Optional[str] = None
    reference_path: Optional[str] = None
    confidence: float = 0.95
    training: Optional[TrainingConfig] = None
    extractor: Optional[ExtractorConfig] = None
    ensemble: Optional[EnsembleConfig] = None


class ProjectionService:
    """Train and project boundary of the engine."""

    def __init__(
        self,
        store: ModelStore,
        reference: Optional[ReferenceTables] = None,
        game_logs: Optional[GameLogRepository] = None,
        trainer: Optional[ModelTrainer] = None,
        extractor: Optional[FeatureExtractor] = None,
        predictor: Optional[RegressionPredictor] = None,
        combiner: Optional[EnsembleCombiner] = None,
        confidence: float = 0.95,
    ):
        self.store = store
        self.reference = reference or ReferenceTables()
        self.game_logs = game_logs or GameLogRepository()
        self.trainer = trainer or ModelTrainer(store)
        self.extractor = extractor or FeatureExtractor(self.reference)
        self.predictor = predictor or RegressionPredictor(store)
        self.combiner = combiner or EnsembleCombiner()
        self.confidence = confidence

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        player_scope: str,
        stat_type,
        season: str,
        samples: Sequence[TrainingSample],
        ridge_lambda: Optional[float] = None,
    ) -> RegressionModel:
        """Fit and persist a model from prepared samples."""
        model = self.trainer.fit(player_scope, stat_type, season, samples, ridge_lambda)
        self.store.save_model(model)
        logger.info("Stored model %s (n=%d, R²=%.3f)", model.key, model.training_data_size, model.r_squared)
        return model

    def samples_for(self, player_scope: str, stat_type, season: Optional[str] = None) -> list:
        """Training samples for one player, or every player for GENERAL."""
        stat_type = StatType.parse(stat_type)
        current = str(season) if season is not None else None
        if player_scope == GENERAL_SCOPE:
            return self.extractor.extract_pooled_samples(self.game_logs.histories(), stat_type, current)
        return self.extractor.extract_training_samples(
            player_scope, self.game_logs.games_for(player_scope), stat_type, current,
        )

    def train_from_game_logs(
        self,
        player_scope: str,
        stat_type,
        season: str,
        ridge_lambda: Optional[float] = None,
    ) -> RegressionModel:
        """
        Extract samples from the loaded game logs and train.

        Args:
            player_scope: Player id, or GENERAL to pool every player
            stat_type: Target stat
            season: Training season
            ridge_lambda: Optional penalty override

        Raises:
            InsufficientDataError: If too few eligible samples exist
        """
        samples = self.samples_for(player_scope, stat_type, season)
        return self.train(player_scope, stat_type, season, samples, ridge_lambda)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def find_model(self, player_scope: str, stat_type, season: str) -> Optional[RegressionModel]:
        """The player's own model if stored, else the GENERAL model, else None."""
        for scope in (player_scope, GENERAL_SCOPE):
            key = ModelKey.create(scope, stat_type, season)
            if self.store.model_exists(key):
                return self.store.load_model(key)
        return None

    def upcoming_context(self, request: ProjectionRequest) -> GameContext:
        """Game context for the request, filling team/date from the player's history."""
        team = request.team
        if team is None:
            history = self.game_logs.games_for(request.player_name)
            if not history:
                raise ValueError(f"No team given and no game history for {request.player_name}")
            team = history[-1].team
        return GameContext(
            game_date=request.game_date or self.extractor.today,
            team=team,
            opponent=request.opponent,
            is_home=request.is_home,
            season=str(request.season),
        )

    def predict(self, request: ProjectionRequest) -> Prediction:
        """
        Regression prediction for a request.

        Raises:
            ModelNotFoundError: If neither a player nor a GENERAL model exists
            InsufficientDataError, InvalidFeatureError, FeatureSchemaError:
                If the upcoming game cannot be featurized
        """
        model = self.find_model(request.player_name, request.stat_type, request.season)
        if model is None:
            raise ModelNotFoundError(
                f"No model for {request.player_name} or {GENERAL_SCOPE} "
                f"({request.stat_type.value}, {request.season})"
            )
        context = self.upcoming_context(request)
        features = self.extractor.featurize_upcoming(
            request.player_name,
            self.game_logs.games_for(request.player_name),
            context,
            request.stat_type,
        )
        for problem in validate_feature_vector(features):
            logger.warning("Upcoming game features for %s: %s", request.player_name, problem)
        return self.predictor.predict_with_model(model, features, self.confidence)

    def project(self, request: ProjectionRequest, heuristic: ProjectionResult) -> ProjectionResult:
        """
        Combine the heuristic projection with the regression prediction.

        Never raises: without a usable model or features the heuristic
        projection is returned with ``regression_factor = 0``.
        """
        try:
            prediction = self.predict(request)
        except ModelNotFoundError as e:
            logger.info("%s; using heuristic projection only", e)
            prediction = None
        except Exception:
            logger.exception(
                "Regression prediction failed for %s %s; using heuristic projection only",
                request.player_name, request.stat_type.value,
            )
            prediction = None
        return self.combiner.combine(request, heuristic, prediction)


def build_projection_service(config: ProjectionConfig) -> ProjectionService:
    """Build a service backed by a JSON model store and optional data files."""
    reference = load_reference_tables(config.reference_path)
    game_logs = (
        GameLogRepository.from_file(config.game_logs_path)
        if config.game_logs_path else GameLogRepository()
    )
    store = JsonModelStore(config.model_dir)
    return ProjectionService(
        store=store,
        reference=reference,
        game_logs=game_logs,
        trainer=ModelTrainer(store, config.training),
        extractor=FeatureExtractor(reference, config.extractor),
        combiner=EnsembleCombiner(config.ensemble),
        confidence=config.confidence,
    )
