# Copyright 2024 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Pytree base class for systems, costs and constraints.

Solvers pass systems and costs as ordinary arguments to jitted kernels.
Registering them as pytrees means numeric fields (weights, goals, noise
levels) are traced like any other array, so updating a goal between
solves reuses the compiled kernel instead of baking stale constants in.
"""

from typing import Tuple

import jax


class Module:
    """Base class whose subclasses are registered as JAX pytrees.

    Subclasses list their array-valued attributes in `data_fields` and
    their hashable structural attributes (manifolds, dimensions, flags) in
    `meta_fields`. Changing a meta field changes the tree structure and
    therefore triggers re-tracing.
    """

    data_fields: Tuple[str, ...] = ()
    meta_fields: Tuple[str, ...] = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        jax.tree_util.register_pytree_node(
            cls, cls._tree_flatten, cls._tree_unflatten)

    def _tree_flatten(self):
        children = tuple(getattr(self, name) for name in self.data_fields)
        aux = tuple(getattr(self, name) for name in self.meta_fields)
        return children, aux

    @classmethod
    def _tree_unflatten(cls, aux, children):
        obj = object.__new__(cls)
        for name, value in zip(cls.meta_fields, aux):
            object.__setattr__(obj, name, value)
        for name, value in zip(cls.data_fields, children):
            object.__setattr__(obj, name, value)
        return obj

    def replace(self, **updates) -> 'Module':
        """Return a copy with some data or meta fields replaced."""
        children, aux = self._tree_flatten()
        obj = self._tree_unflatten(aux, children)
        for name, value in updates.items():
            if name not in self.data_fields and name not in self.meta_fields:
                raise AttributeError(
                    f"{type(self).__name__} has no field '{name}'")
            object.__setattr__(obj, name, value)
        return obj
