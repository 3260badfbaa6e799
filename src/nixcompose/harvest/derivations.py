# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Extract fixed-output hashes from ``nix derivation show`` output."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..errors import EvaluatorError
from ..process_utils import SubprocessExecutionError, run_command

DerivationShowRunner = Callable[[Sequence[str]], str]


@dataclass(frozen=True, slots=True)
class HarvestedHash:
    """A hash string as it appears in a derivation, with its algorithm if stated."""

    hash: str
    algo: str | None = None

    def to_csv_record(self) -> str:
        algo = f'"{self.algo}"' if self.algo is not None else "null"
        return f'"{self.hash}", {algo}'


@dataclass(frozen=True, slots=True)
class DerivationHashes:
    """Hashes declared by one derivation."""

    env: HarvestedHash | None
    outputs: tuple[tuple[str, HarvestedHash], ...] = ()

    def __iter__(self) -> Iterator[HarvestedHash]:
        if self.env is not None:
            yield self.env
        for _name, output_hash in self.outputs:
            yield output_hash

    def __len__(self) -> int:
        return (1 if self.env is not None else 0) + len(self.outputs)


def hashes_for_derivation(payload: Mapping[str, Any]) -> DerivationHashes:
    """Return the ``env.outputHash`` and per-output hashes of a derivation."""

    env = payload.get("env") or {}
    env_hash = env.get("outputHash")
    env_algo = env.get("outputHashAlgo") or None
    outputs: list[tuple[str, HarvestedHash]] = []
    for name, output in (payload.get("outputs") or {}).items():
        if not isinstance(output, Mapping) or "hash" not in output:
            continue
        outputs.append((str(name), HarvestedHash(str(output["hash"]), output.get("hashAlgo"))))
    return DerivationHashes(
        env=HarvestedHash(str(env_hash), env_algo) if env_hash else None,
        outputs=tuple(outputs),
    )


def parse_derivation_show(document: str) -> dict[str, DerivationHashes]:
    """Decode ``nix derivation show`` JSON into per-derivation hashes.

    Both the flat ``{drvPath: derivation}`` layout and the versioned
    ``{"derivations": {...}}`` layout are accepted.
    """

    data = json.loads(document)
    if isinstance(data, Mapping) and isinstance(data.get("derivations"), Mapping):
        data = data["derivations"]
    if not isinstance(data, Mapping):
        raise EvaluatorError("nix derivation show returned a non-object document")
    return {str(drv_path): hashes_for_derivation(drv) for drv_path, drv in data.items() if isinstance(drv, Mapping)}


def _nix_derivation_show(args: Sequence[str]) -> str:
    return run_command(args).stdout


def collect_hashes(
    drv_paths: Iterable[str],
    *,
    runner: DerivationShowRunner = _nix_derivation_show,
) -> dict[str, DerivationHashes]:
    """Query ``drv_paths`` (and their closures) for declared hashes.

    Raises:
        EvaluatorError: If ``nix derivation show`` fails.
    """

    args = ["nix", "derivation", "show", "--recursive", *drv_paths]
    try:
        document = runner(args)
    except SubprocessExecutionError as exc:
        raise EvaluatorError(
            f"nix derivation show failed: {exc}",
            returncode=exc.returncode,
            stderr=exc.stderr,
        ) from exc
    except FileNotFoundError as exc:
        raise EvaluatorError(str(exc)) from exc
    return parse_derivation_show(document)


__all__ = [
    "DerivationHashes",
    "HarvestedHash",
    "collect_hashes",
    "hashes_for_derivation",
    "parse_derivation_show",
]
