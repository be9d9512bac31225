"""
Nearly-Constant-Velocity Kalman Filter

Linear Kalman filter for one track segment of a cell lineage. Positions are
measured directly; velocities are inferred. Time is counted in frames, so a
step of the filter is one link of the lineage graph (dt = 1 frame).

State Vector: [x, y, z, vx, vy, vz]^T
    - x, y, z: Position (length units)
    - vx, vy, vz: Velocity (length/frame)

Reference:
    - Bar-Shalom, Y. "Estimation with Applications to Tracking and Navigation", 2001
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

# Number of spatial dimensions
N_DIMS = 3

# Above this condition number the innovation covariance is treated as singular
MAX_INNOVATION_CONDITION = 1e12


def _make_transition_matrix() -> np.ndarray:
    """
    State transition matrix A for dt = 1 frame.

    | I3  I3 |
    | 0   I3 |
    """
    A = np.eye(2 * N_DIMS)
    A[:N_DIMS, N_DIMS:] = np.eye(N_DIMS)
    return A


def _make_measurement_matrix() -> np.ndarray:
    """Measurement matrix H: only the position is observed."""
    return np.eye(N_DIMS, 2 * N_DIMS)


@dataclass
class StateAndCovariance:
    """
    A state estimate and its covariance.

    Attributes:
        state: State vector [x, y, z, vx, vy, vz]
        covariance: State covariance matrix (6x6)
    """

    state: np.ndarray
    covariance: np.ndarray

    @property
    def position(self) -> np.ndarray:
        """Position part of the state."""
        return self.state[:N_DIMS]

    @property
    def velocity(self) -> np.ndarray:
        """Velocity part of the state (length/frame)."""
        return self.state[N_DIMS:]

    def __str__(self) -> str:
        width = 5
        lines = [f"{type(self).__name__}", "State:"]
        for value in self.state:
            lines.append(f"{value:.1f}".rjust(width))
        lines.append("Covariance:")
        for row in self.covariance:
            lines.append("".join(f"{value:.1f}".rjust(width) for value in row))
        return "\n".join(lines)


class NCVKalmanFilter:
    """
    Kalman filter with a nearly-constant velocity motion model.

    Motion model (dt = 1 frame):
        x_{k+1} = x_k + vx_k
        vx_{k+1} = vx_k

    Measurement model:
        z = [x, y, z] (direct position measurement)

    Each tick is ``predict()`` followed by ``update()``. ``update()`` runs the
    prediction step itself when it has not run yet in the current tick, and
    ``predict()`` is a no-op when called twice in the same tick.

    Example:
        >>> kf = NCVKalmanFilter([0, 0, 0, 1, 0, 0], np.eye(3), 0.1, 0.01, 0.01)
        >>> kf.predict()
        >>> kf.update([1.0, 0.0, 0.0], np.eye(3))
        >>> prediction = kf.get_predicted_state()
    """

    A = _make_transition_matrix()
    H = _make_measurement_matrix()

    def __init__(
        self,
        X0: Sequence[float],
        position_covariance: np.ndarray,
        init_state_covariance: float,
        position_process_std: float,
        velocity_process_std: float,
    ) -> None:
        """
        Initialize a new Kalman filter with the specified initial state.

        Args:
            X0: Initial state [x0, y0, z0, vx0, vy0, vz0], velocity in
                length/frame units
            position_covariance: Covariance of the position measurement (3x3).
                Seeds the position block of the initial state covariance and
                the measurement noise R.
            init_state_covariance: Trust in the initial state. Large values
                (e.g. 100) mean the initial guess is not trusted, small values
                (e.g. 1e-2) mean it is.
            position_process_std: Std of the white noise affecting position
                evolution (length units)
            velocity_process_std: Std of the white noise affecting velocity
                evolution (length/frame)

        Raises:
            ValueError: If X0 or position_covariance have the wrong shape
        """
        X = np.asarray(X0, dtype=np.float64).reshape(-1)
        if X.shape != (2 * N_DIMS,):
            raise ValueError(f"Initial state must have {2 * N_DIMS} elements, got {X.size}")
        R = np.asarray(position_covariance, dtype=np.float64)
        if R.shape != (N_DIMS, N_DIMS):
            raise ValueError(f"Position covariance must be {N_DIMS}x{N_DIMS}, got {R.shape}")

        self._X = X.copy()
        self._Xp = X.copy()

        self._P = np.eye(2 * N_DIMS) * init_state_covariance
        self._P[:N_DIMS, :N_DIMS] += R

        self._Q = np.diag(
            [position_process_std**2] * N_DIMS + [velocity_process_std**2] * N_DIMS
        )
        self._R = R.copy()

        self._n_occlusion = 0
        self._n_rejected = 0
        self._predicted = False

    @property
    def state(self) -> np.ndarray:
        """Current (a posteriori) state estimate."""
        return self._X.copy()

    @property
    def covariance(self) -> np.ndarray:
        """
        State covariance.

        The filter keeps a single P: this is the a posteriori covariance of
        ``state`` after ``update``, and the predicted (prior) covariance once
        ``predict`` or ``get_predicted_state`` has run in the current tick.
        Check ``is_predicted`` to tell the two apart.
        """
        return self._P.copy()

    @property
    def n_occlusion(self) -> int:
        """Number of consecutive updates without a measurement."""
        return self._n_occlusion

    @property
    def n_rejected(self) -> int:
        """Number of measurements rejected because of a singular innovation covariance."""
        return self._n_rejected

    @property
    def is_predicted(self) -> bool:
        """True if the prediction step already ran in the current tick."""
        return self._predicted

    def predict(self) -> None:
        """
        Run the prediction step.

        Prediction equations:
            Xp = A * X
            P  = A * P * A^T + Q
        """
        if self._predicted:
            return
        self._Xp = self.A @ self._X
        self._P = self.A @ self._P @ self.A.T + self._Q
        self._predicted = True

    def update(
        self,
        measurement: Optional[Sequence[float]],
        measurement_covariance: Optional[np.ndarray] = None,
    ) -> None:
        """
        Run the update step with the specified measurement.

        Update equations:
            S = H * P * H^T + R    (innovation covariance)
            K = P * H^T * S^-1     (Kalman gain)
            X = Xp + K * (z - H * Xp)
            P = (I - K * H) * P

        Args:
            measurement: Measured [x, y, z] position, or None for an
                occlusion. On occlusion the state is set to the prediction.
            measurement_covariance: Covariance of this measurement (3x3).
                Keeps the previous R if not given.
        """
        self.predict()
        self._predicted = False

        if measurement is None:
            self._coast()
            return

        R = self._R
        if measurement_covariance is not None:
            R = np.asarray(measurement_covariance, dtype=np.float64).reshape(N_DIMS, N_DIMS)

        S = self.H @ self._P @ self.H.T + R
        if not np.all(np.isfinite(S)) or np.linalg.cond(S) > MAX_INNOVATION_CONDITION:
            self._n_rejected += 1
            logger.warning(
                "Singular innovation covariance, measurement %s treated as occlusion",
                np.asarray(measurement).tolist(),
            )
            self._coast()
            return

        self._R = R
        self._n_occlusion = 0
        z = np.asarray(measurement, dtype=np.float64).reshape(N_DIMS)
        K = self._P @ self.H.T @ np.linalg.inv(S)

        # State
        self._X = self._Xp + K @ (z - self.H @ self._Xp)

        # Covariance (Joseph form keeps P symmetric)
        I_KH = np.eye(2 * N_DIMS) - K @ self.H
        self._P = I_KH @ self._P @ I_KH.T + K @ self._R @ K.T

    def _coast(self) -> None:
        """Trust the motion model: adopt the prediction as the new state."""
        self._n_occlusion += 1
        self._X = self._Xp.copy()

    def get_predicted_state(self) -> StateAndCovariance:
        """
        Return the predicted state and covariance.

        Runs the prediction step if it has not run in the current tick.
        """
        self.predict()
        return StateAndCovariance(state=self._Xp.copy(), covariance=self._P.copy())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(state={np.round(self._X, 3).tolist()}, "
            f"n_occlusion={self._n_occlusion})"
        )
