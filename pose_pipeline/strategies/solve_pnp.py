import cv2
import numpy as np

from ..errors import SolveFailed
from ..pp_types import CameraIntrinsics

# All markers share one plane, so IPPE is the default.
METHODS = {
    "ippe": cv2.SOLVEPNP_IPPE,
    "iterative": cv2.SOLVEPNP_ITERATIVE,
    "sqpnp": cv2.SOLVEPNP_SQPNP,
    "ransac": cv2.SOLVEPNP_ITERATIVE,
}


class PnPSolver:
    """
    Strategy: camera-from-world pose from 3D/2D correspondences.
    Returns True and writes rvec_out/tvec_out in place on success, False when
    OpenCV found no valid pose. OpenCV errors are raised as SolveFailed.
    Callers must check len(points) >= 4 beforehand.
    """

    def __init__(
        self,
        method: str = "ippe",
        use_extrinsic_guess: bool = False,
        ransac_reprojection_error: float = 8.0,
        ransac_iterations: int = 100,
        ransac_confidence: float = 0.99,
    ):
        key = (method or "").strip().lower()
        if key not in METHODS:
            raise ValueError(f"Unknown PnP method: {method!r} (choose from {sorted(METHODS)})")
        self.method = key
        self.flags = METHODS[key]
        self.use_extrinsic_guess = bool(use_extrinsic_guess)
        self.ransac_reprojection_error = float(ransac_reprojection_error)
        self.ransac_iterations = int(ransac_iterations)
        self.ransac_confidence = float(ransac_confidence)

    def _guess_allowed(self) -> bool:
        # OpenCV only honours an initial guess for the iterative solver.
        return self.use_extrinsic_guess and self.flags == cv2.SOLVEPNP_ITERATIVE

    def solve(
        self,
        world_points: np.ndarray,
        image_points: np.ndarray,
        intrinsics: CameraIntrinsics,
        rvec_out: np.ndarray,
        tvec_out: np.ndarray,
        initial_guess: bool = False,
    ) -> bool:
        obj = np.asarray(world_points, dtype=np.float64).reshape(-1, 3)
        img = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
        if obj.shape[0] != img.shape[0]:
            raise ValueError(f"point count mismatch: {obj.shape[0]} world vs {img.shape[0]} image")

        K = intrinsics.camera_matrix
        dist = intrinsics.dist_coeffs
        guess = initial_guess and self._guess_allowed()
        rvec0 = rvec_out.copy() if guess else None
        tvec0 = tvec_out.copy() if guess else None

        try:
            if self.method == "ransac":
                ok, rvec, tvec, _inliers = cv2.solvePnPRansac(
                    obj,
                    img,
                    K,
                    dist,
                    rvec=rvec0,
                    tvec=tvec0,
                    useExtrinsicGuess=guess,
                    iterationsCount=self.ransac_iterations,
                    reprojectionError=self.ransac_reprojection_error,
                    confidence=self.ransac_confidence,
                    flags=self.flags,
                )
            else:
                ok, rvec, tvec = cv2.solvePnP(
                    obj,
                    img,
                    K,
                    dist,
                    rvec=rvec0,
                    tvec=tvec0,
                    useExtrinsicGuess=guess,
                    flags=self.flags,
                )
        except cv2.error as exc:
            raise SolveFailed(f"solvePnP ({self.method}) raised: {exc}") from exc

        if not ok or rvec is None or tvec is None:
            return False
        rvec = np.asarray(rvec, dtype=np.float64).reshape(3, 1)
        tvec = np.asarray(tvec, dtype=np.float64).reshape(3, 1)
        if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            return False

        rvec_out[...] = rvec.reshape(rvec_out.shape)
        tvec_out[...] = tvec.reshape(tvec_out.shape)
        return True
