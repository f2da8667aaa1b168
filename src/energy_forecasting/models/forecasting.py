# stdlib
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable
# thirdpartylib
import numpy as np
import torch
from torch import Tensor
from torch.nn import Module, LSTM, Linear, ReLU, MSELoss
from torch.utils.data import DataLoader, TensorDataset
from sklearn.linear_model import LinearRegression
# projectlib
from energy_forecasting.config.settings import TrainingConfig
from energy_forecasting.utils.errors import InvalidInputError, TrainingFailure
from energy_forecasting.utils.logging import Logger
from energy_forecasting.utils.typing import ArrayLike1D, ModelKind


@dataclass
class ModelHandle:
    """
    Trained state returned by :meth:`Regressor.train`.

    Attributes
    ----------
    model : Any
        Fitted estimator (a torch module or a scikit-learn regressor).
    look_back : int
        Window length the model was trained on.
    history : list of dict
        Per-epoch losses recorded during fitting, if any.
    """
    model: Any
    look_back: int
    history: List[Dict[str, float]] = field(default_factory=list)


@runtime_checkable
class Regressor(Protocol):
    """
    Capability set the forecasting pipeline needs from a model.

    Any regression technique can back it as long as ``predict`` is a
    pure function of the window and the trained state.
    """

    def train(
            self,
            X: np.ndarray,
            y: np.ndarray,
            config: TrainingConfig,
        ) -> ModelHandle: ...

    def predict(self, handle: ModelHandle, window: ArrayLike1D) -> float: ...


def check_training_data(X: np.ndarray, y: np.ndarray) -> None:
    """Reject training data a regressor cannot be fitted on."""
    if X.ndim != 2 or y.ndim != 1:
        raise TrainingFailure(
            f"Expected 2-D windows and 1-D targets, got shapes "
            f"{X.shape} and {y.shape}."
        )
    if len(X) != len(y):
        raise TrainingFailure(
            f"Got {len(X)} windows for {len(y)} targets."
        )
    if len(y) == 0:
        raise TrainingFailure("Cannot train on an empty dataset.")

def check_window(handle: ModelHandle, window: ArrayLike1D) -> np.ndarray:
    """Return ``window`` as a float array, enforcing the trained length."""
    values = np.asarray(window, dtype=np.float64)
    if values.shape != (handle.look_back,):
        raise InvalidInputError(
            f"Window of shape {values.shape} does not match the trained "
            f"look-back of {handle.look_back}."
        )
    return values


class LSTMRegressor(Module):
    """
    LSTM-based regressor for sequence-to-one prediction tasks.

    This model processes an input sequence using an LSTM layer, passes
    the hidden state of the final time step through a small ReLU
    layer, and produces a single scalar prediction. Flat windows of
    shape ``(batch_size, sequence_length)`` are treated as sequences
    with one feature per step.

    Parameters
    ----------
    input_size : int
        Number of input features per time step.
    hidden_size : int
        Number of hidden units in the LSTM layer.
    dense_size : int
        Number of units of the intermediate dense layer.
    """
    def __init__(
            self,
            input_size: int = 1,
            hidden_size: int = 32,
            dense_size: int = 16,
        ) -> None:
        super().__init__()  # pyright: ignore[reportUnknownMemberType]
        # Recurrent layer that processes the input sequence
        self.lstm = LSTM(
            input_size=input_size,
            hidden_size=hidden_size,
            batch_first=True,
        )
        self.dense = Linear(hidden_size, dense_size)
        self.act = ReLU()
        # Linear projection to scalar output
        self.fc = Linear(dense_size, 1)

    def forward(self, x: Tensor) -> Tensor:
        """
        Forward pass of the LSTM regressor.

        Parameters
        ----------
        x : torch.Tensor
            Input tensor of shape ``(batch_size, sequence_length)`` or
            ``(batch_size, sequence_length, input_size)``.

        Returns
        -------
        torch.Tensor
            Output tensor of shape ``(batch_size, 1)``.
        """
        if x.dim() == 2:
            x = x.unsqueeze(-1)
        # LSTM outputs hidden states for all time steps
        out, _ = self.lstm(x)
        # Extract hidden state from the final time step
        last = out[:, -1, :]
        return self.fc(self.act(self.dense(last)))


class LSTMForecaster(object):
    """
    Train and query an :class:`LSTMRegressor` on look-back windows.

    Training minimizes mean-squared error with Adam over shuffled
    mini-batches. The last ``validation_split`` fraction of the windows
    (in series order) is held out, and training stops early once the
    validation loss has not improved for ``early_stopping_patience``
    consecutive epochs. Without a validation slice the training loss is
    monitored instead.
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.log = logger if logger is not None else Logger()
        self.device = torch.device("cpu")

    def train(
            self,
            X: np.ndarray,
            y: np.ndarray,
            config: TrainingConfig,
        ) -> ModelHandle:
        """
        Fit a fresh model on ``(X, y)``.

        Raises
        ------
        TrainingFailure
            If the data has an invalid shape, leaves no training
            samples, the loss becomes non-finite, or torch raises
            during fitting.
        """
        X = np.asarray(X, dtype=np.float32)
        y = np.asarray(y, dtype=np.float32)
        check_training_data(X, y)
        split_at = int(len(X) * (1.0 - config.validation_split))
        if split_at < 1:
            raise TrainingFailure(
                f"validation_split={config.validation_split} leaves no "
                f"training samples out of {len(X)}."
            )
        if config.seed is not None:
            torch.manual_seed(config.seed)
        try:
            return self._fit(X, y, split_at, config)
        except TrainingFailure:
            raise
        except (RuntimeError, ValueError) as e:
            raise TrainingFailure(f"LSTM training failed: {e}") from e

    def _fit(
            self,
            X: np.ndarray,
            y: np.ndarray,
            split_at: int,
            config: TrainingConfig,
        ) -> ModelHandle:
        X_t = torch.tensor(X, dtype=torch.float32, device=self.device)
        y_t = torch.tensor(
            y,
            dtype=torch.float32,
            device=self.device,
        ).unsqueeze(1)
        X_train, y_train = X_t[:split_at], y_t[:split_at]
        X_val, y_val = X_t[split_at:], y_t[split_at:]
        train_loader = DataLoader(
            TensorDataset(X_train, y_train),
            batch_size=config.batch_size,
            shuffle=True,
        )
        model = LSTMRegressor(
            input_size=1,
            hidden_size=config.hidden_size,
            dense_size=config.dense_size,
        ).to(self.device)
        criterion = MSELoss()
        optimizer = torch.optim.Adam(
            model.parameters(),
            lr=config.learning_rate,
        )
        history: List[Dict[str, float]] = []
        best = math.inf
        wait = 0
        for epoch in range(config.epochs):
            model.train()
            total = 0.0
            for xb, yb in train_loader:
                optimizer.zero_grad()
                loss = criterion(model(xb), yb)
                loss.backward()
                optimizer.step() # pyright: ignore[reportUnknownMemberType]
                total += float(loss.item()) * len(xb)
            train_loss = total / split_at
            record = {"epoch": float(epoch + 1), "loss": train_loss}
            monitored = train_loss
            if len(X_val):
                model.eval()
                with torch.no_grad():
                    val_loss = float(criterion(model(X_val), y_val).item())
                record["val_loss"] = val_loss
                monitored = val_loss
            history.append(record)
            if not math.isfinite(monitored):
                raise TrainingFailure(
                    f"Loss diverged to {monitored} at epoch {epoch + 1}."
                )
            self.log(
                f"Epoch {epoch + 1}/{config.epochs} "
                + ", ".join(f"{k}: {v:.6f}" for k, v in record.items()
                            if k != "epoch"),
                2,
            )
            # Early stopping on the monitored loss
            if monitored < best:
                best = monitored
                wait = 0
            else:
                wait += 1
                if wait >= config.early_stopping_patience:
                    self.log(f"Early stopping after epoch {epoch + 1}.", 1)
                    break
        model.eval()
        return ModelHandle(model=model, look_back=X.shape[1], history=history)

    def predict(self, handle: ModelHandle, window: ArrayLike1D) -> float:
        """Predict the reading that follows ``window``."""
        values = check_window(handle, window)
        x = torch.tensor(
            values,
            dtype=torch.float32,
            device=self.device,
        ).reshape(1, -1, 1)
        with torch.no_grad():
            return float(handle.model(x).item())


class LinearForecaster(object):
    """
    Ordinary least-squares baseline on look-back windows.

    Epoch, batch and early-stopping options do not apply and are
    ignored.
    """

    def train(
            self,
            X: np.ndarray,
            y: np.ndarray,
            config: TrainingConfig,
        ) -> ModelHandle:
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        check_training_data(X, y)
        try:
            model = LinearRegression().fit(X, y)
        except ValueError as e:
            raise TrainingFailure(f"Linear fit failed: {e}") from e
        return ModelHandle(model=model, look_back=X.shape[1])

    def predict(self, handle: ModelHandle, window: ArrayLike1D) -> float:
        values = check_window(handle, window)
        return float(handle.model.predict(values.reshape(1, -1))[0])


def build_regressor(
        kind: ModelKind,
        logger: Optional[Logger] = None,
    ) -> Regressor:
    """Instantiate the regressor registered under ``kind``."""
    if kind == "lstm":
        return LSTMForecaster(logger=logger)
    if kind == "linear":
        return LinearForecaster()
    raise InvalidInputError(f"Unknown model kind {kind!r}.")
