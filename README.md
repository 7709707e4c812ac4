# liesmooth

Lie groups and calculus on manifolds, built on NumPy.

`liesmooth` provides:

- `liesmooth.lie_group.LieGroup` is an abstract base class for immutable Lie group elements. It offers composition (`*`), `inverse`, `exp`/`log`, `hat`/`vee`, the adjoints `Ad` and `ad`, and `lie_bracket`. It also has right-plus (`g + a`) and right-minus (`g1 - g2`). Finally, it gives the first and second derivatives of the exponential map in right and left form: `dr_exp`, `dr_expinv`, `dl_exp`, `dl_expinv`, `d2r_exp`, `d2r_expinv`, `d2l_exp` and `d2l_expinv`.
- `liesmooth.so2.SO2` represents planar rotations, stored as `[qz, qw]`.
- `liesmooth.so3.SO3` represents 3D rotations, stored as a unit quaternion `[qx, qy, qz, qw]` with `qw >= 0`. It adds `from_quaternion`, `rot_x`/`rot_y`/`rot_z`, `quat`, `euler_angles`, `act`, `dr_action` and `project_so2`. It also has the series sums `calc_s1`, `calc_s2` and `calc_s1inv`.
- `liesmooth.bundle` provides direct products of groups, for example SO(3) × SO(2). They are built with `bundle(...)` and behave as a single group.
- `liesmooth.diff` provides tangent-space differentiation with `dr`, for functions whose arguments and results are Lie group elements, floats or NumPy arrays. The helpers `dof`, `rplus` and `rminus` work on all of these.
- `liesmooth.tr_solver` provides trust-region step computation for least-squares problems: `solve_linear_ldlt` and `solve_trust_region`.

## Installation

```
pip install liesmooth
```

To run the tests:

```
pip install "liesmooth[test]"
pytest
```

## Groups

```python
import numpy as np
from liesmooth.so3 import SO3

rng = np.random.default_rng(5)

g1 = SO3.random(rng)
g2 = SO3.rot_z(0.3)

g = g1 * g2                    # composition
a = g - g1                     # right-minus: log(g1^-1 * g)
assert (g1 + a).is_approx(g)   # right-plus: g1 * exp(a)

R = g.matrix()                 # 3x3 rotation matrix
v = g.act(np.array([1.0, 0.0, 0.0]))
yaw = g.project_so2().angle()
angles = g.euler_angles()      # ZYX convention by default
```

`SO3.random` and `SO2.random` take an optional `numpy.random.Generator`. Without one they use a fresh generator.

Elements are immutable. `coeffs` is a read-only array of the internal coefficients. `==` compares coefficients exactly, and `is_approx` compares them relative to their size.

Tangent-space operations are class methods:

```python
w = np.array([0.1, -0.2, 0.3])
SO3.exp(w)
SO3.hat(w)          # 3x3 skew-symmetric matrix
SO3.dr_exp(w)       # right Jacobian of exp
SO3.dr_expinv(w)    # its inverse
SO3.d2r_exp(w)      # right Hessian, horizontally stacked (3 x 9)
```

For a commutative group such as `SO2`, `Ad`, `dr_exp` and `dr_expinv` are identities, while `ad`, `lie_bracket` and the Hessians are zero.

## Bundles

```python
from liesmooth.bundle import bundle
from liesmooth.so2 import SO2
from liesmooth.so3 import SO3

SO3xSO2 = bundle(SO3, SO2)     # the same type is returned for the same arguments
x = SO3xSO2.from_parts(SO3.rot_x(0.1), SO2.from_angle(0.5))
x.part(1).angle()              # 0.5
x.log()                        # 4-vector: SO3 tangent, then SO2 tangent
x.matrix()                     # 5x5 block-diagonal matrix
```

The bundle stores the coefficients and tangents of its parts one after another, in order. Its matrices and Jacobians are block diagonal.

## Differentiation

```python
import numpy as np
from liesmooth.diff import DiffType, dr
from liesmooth.so3 import SO3

g1 = SO3.random(np.random.default_rng(1))
g2 = SO3.random(np.random.default_rng(2))

value, jac = dr(lambda a, b: a * b, (g1, g2))
# jac has shape (3, 6): derivative w.r.t. g1, then w.r.t. g2

f = lambda x: float(x @ x)
value, grad, hess = dr(f, (np.array([2.0, 4.0, 6.0]),), order=2)
```

`dr(f, x, order=1, method=DiffType.DEFAULT, idx=None)` takes a tuple of arguments in `x`. Any other value is treated as a single argument. The result depends on `order`:

- order 0 returns `(f(x),)`
- order 1 returns `(f(x), J)`
- order 2 returns `(f(x), J, H)`

`J[i, j]` is the derivative of the i:th degree of freedom of `f` with respect to the j:th degree of freedom of the arguments. `H` stacks one Hessian per output degree of freedom horizontally. For a scalar function it is therefore a square matrix.

Methods:

- `DiffType.NUMERICAL` uses forward differences for first derivatives and central differences for second derivatives.
- `DiffType.ANALYTIC` calls the function's own `jacobian(*args)` method, and `hessian(*args)` for order 2. Both are taken with respect to all arguments. Dense arrays and objects with `toarray()` are both accepted.
- `DiffType.DEFAULT` picks analytic when the needed methods exist and numerical otherwise.

`idx` restricts differentiation to the arguments at the given positions:

```python
f3 = lambda s, v, g: s * v.sum() + g.log().sum()
x1, x2, x3 = 0.5, np.array([1.0, 2.0]), SO3.rot_y(0.2)
value, jac = dr(f3, (x1, x2, x3), idx=(0, 2))   # jac has 1 + 3 columns
```

## Trust-region steps

```python
import numpy as np
from liesmooth.tr_solver import solve_linear_ldlt, solve_trust_region

J = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
d = np.ones(2)
r = np.array([1.0, -1.0, 0.5])

dx, lam = solve_trust_region(J, d, r, delta=1.0)
dx, dphi = solve_linear_ldlt(J, d, r, 0.5, with_dphi=True)
```

`solve_linear_ldlt` solves `(J'J + λ D'D) dx = -J'r`, where `D = diag(d)`. It can also return the derivative of `ϕ(λ) = ||D dx||`.

`solve_trust_region` sets `λ = 1/Δ` and returns `(dx, λ)`.

## What is not included

- The only groups are SO(2), SO(3) and bundles of them. There are no rigid-motion groups such as SE(2) or SE(3).
- The package computes single trust-region steps. It has no complete nonlinear least-squares minimiser that iterates them.
- There are no splines or curve fitting.
- There is no automatic differentiation. Derivatives are either numerical or supplied by the function itself.
- There is no command-line program.