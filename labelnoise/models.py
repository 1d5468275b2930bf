"""Classifier variants behind one fit/predict contract."""
from typing import Any, Callable, Dict, Optional
import numpy as np
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC, LinearSVC
from sklearn.linear_model import LogisticRegression


class Classifier:
    """Scaler + estimator pipeline; callers only see fit/predict/accuracy."""
    name = "classifier"

    def __init__(self, random_state: Optional[int] = None, **params: Any):
        self.random_state = random_state
        self.params = params
        self.model = Pipeline([
            ('scaler', StandardScaler()),
            ('clf', self.make_estimator(**params)),
        ])

    def make_estimator(self, **params: Any):
        raise NotImplementedError

    def fit(self, X: np.ndarray, y: np.ndarray) -> "Classifier":
        self.model.fit(X, y)
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        return self.model.predict(X)

    def accuracy(self, X: np.ndarray, y: np.ndarray) -> float:
        yhat = self.predict(X)
        return float(np.mean(yhat == y))

    def converged(self) -> bool:
        """False when the fitted solver stopped at its iteration cap.

        Read off the estimator (`n_iter_` vs `max_iter`); warning filters are not involved.
        """
        est = self.model.named_steps['clf']
        max_iter = getattr(est, 'max_iter', None)
        n_iter = getattr(est, 'n_iter_', None)
        if n_iter is None or max_iter is None or max_iter < 0:
            return True
        return int(np.max(n_iter)) < max_iter


class KernelSVM(Classifier):
    name = "kernel_svm"

    def make_estimator(self, C: float = 1.0, gamma: Any = 'scale', **kw: Any):
        return SVC(kernel='rbf', C=C, gamma=gamma, random_state=self.random_state, **kw)


class LinearSVM(Classifier):
    name = "linear_svm"

    def make_estimator(self, C: float = 1.0, max_iter: int = 5000, **kw: Any):
        # primal solver: n_samples >> n_features here
        return LinearSVC(C=C, dual=False, max_iter=max_iter,
                         random_state=self.random_state, **kw)


class LogisticClassifier(Classifier):
    name = "logistic_regression"

    def make_estimator(self, C: float = 1.0, max_iter: int = 2000, solver: str = 'lbfgs', **kw: Any):
        return LogisticRegression(C=C, solver=solver, max_iter=max_iter,
                                  random_state=self.random_state, **kw)


CLASSIFIERS: Dict[str, Callable[..., Classifier]] = {
    KernelSVM.name: KernelSVM,
    LinearSVM.name: LinearSVM,
    LogisticClassifier.name: LogisticClassifier,
}


def create_classifier(kind: str, random_state: Optional[int] = None, **params: Any) -> Classifier:
    try:
        cls = CLASSIFIERS[kind]
    except KeyError:
        raise ValueError(f"Unknown classifier kind: {kind}") from None
    return cls(random_state=random_state, **params)
