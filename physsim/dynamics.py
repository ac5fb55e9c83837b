# dynamics.py
# Free rigid-body dynamics: angular-momentum formulation with a rotation-matrix state

import numpy as np
from physcommon.math import Vector3D, Matrix3, axis_angle_to_rotation, orthonormalize


class RigidBody:
    """Rigid body moving under its initial linear and angular momentum only."""
    def __init__(
        self,
        pos=None,
        lin_vel=None,
        rot_mat=None,
        ang_mom=None,
        inv_ine=None,
    ):
        """
        Parameters
        ----------
        pos : Vector3D, optional
            World-space centroid. Defaults to the origin.
        lin_vel : Vector3D, optional
            World-space linear velocity.
        rot_mat : Matrix3, optional
            Body→world rotation. Defaults to identity.
        ang_mom : Vector3D, optional
            World-space angular momentum L.
        inv_ine : Matrix3, optional
            Inverse inertia tensor in the body frame. Defaults to identity.
            Passed already inverted so stepping never inverts a near-singular tensor.
        """
        self.pos = pos if pos is not None else Vector3D()
        self.lin_vel = lin_vel if lin_vel is not None else Vector3D()
        self.rot_mat = rot_mat if rot_mat is not None else Matrix3.identity()
        self.ang_mom = ang_mom if ang_mom is not None else Vector3D()
        self.inv_ine = inv_ine if inv_ine is not None else Matrix3.identity()

    @classmethod
    def from_inertia(cls, inertia, **kwargs):
        """Build a body from its body-frame inertia tensor, inverting it once."""
        return cls(inv_ine=Matrix3(np.linalg.inv(np.asarray(inertia, dtype=float))), **kwargs)

    def inv_inertia_world(self):
        # I⁻¹_world = R I⁻¹_body Rᵀ
        return self.rot_mat @ self.inv_ine @ self.rot_mat.transpose()

    def angular_velocity(self):
        """ω = I⁻¹_world · L"""
        return self.inv_inertia_world() @ self.ang_mom

    def kinetic_energy(self):
        """Rotational ½ ωᵀL plus translational ½|v|² for unit mass."""
        return 0.5 * self.angular_velocity().dot(self.ang_mom) + 0.5 * self.lin_vel.dot(self.lin_vel)

    def step_sim(self, dt):
        """Advance the body by ``dt`` seconds.

        Position moves linearly, the rotation is left-multiplied by the
        axis-angle rotation ω·dt and then re-orthonormalised. ``lin_vel`` and
        ``ang_mom`` are never written.
        """
        if dt == 0:
            return
        omega = self.angular_velocity()
        self.pos = self.pos + self.lin_vel * dt
        self.rot_mat = orthonormalize(axis_angle_to_rotation(omega * dt) @ self.rot_mat)

    def copy(self):
        return RigidBody(
            pos=self.pos.copy(),
            lin_vel=self.lin_vel.copy(),
            rot_mat=self.rot_mat.copy(),
            ang_mom=self.ang_mom.copy(),
            inv_ine=self.inv_ine.copy(),
        )

    def __repr__(self):
        return f"RigidBody(pos={self.pos}, lin_vel={self.lin_vel}, ang_mom={self.ang_mom})"
