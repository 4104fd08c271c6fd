"""Merging of target options with partial overrides.

Options are merged as plain dicts (as loaded from ampere.toml) and only
validated against a builder schema once fully merged. A partial override
may carry only half of a target reference, e.g. the options of the main
target but not its name; the missing half is taken from the base options.
"""

from typing import Any

from ampere.domain.models import TargetRef

Options = dict[str, Any]


def get_target_ref(target: str | TargetRef | dict[str, Any] | None) -> TargetRef:
    """Wrap a target string in a TargetRef; pass references through."""
    if target is None:
        return TargetRef()
    if isinstance(target, TargetRef):
        return target
    if isinstance(target, str):
        return TargetRef(target=target)
    return TargetRef.model_validate(target)


def merge_options(base: Options | None, overrides: Options | None) -> Options:
    """Overlay overrides on base, ignoring None values and empty lists.

    Unset schema fields come through as None or [] and must not wipe out a
    configured value.
    """
    options = dict(base or {})
    for key, value in (overrides or {}).items():
        if value is None or (isinstance(value, list) and not value):
            continue
        options[key] = value
    return options


def _merge_ref(base: str | TargetRef | dict | None, override: str | TargetRef | dict) -> Options:
    old = get_target_ref(base)
    new = get_target_ref(override)
    return {
        "target": new.target if new.target is not None else old.target,
        "options": merge_options(old.options, new.options),
    }


def merge_build_options(options: Options, additional: Options | None) -> Options:
    """Merge partial build options into build options.

    Args:
        options: The base build options.
        additional: Partial build options to merge in.

    Returns:
        A new options dict; neither argument is modified.
    """
    if not additional:
        return dict(options)

    merged = dict(options)
    for key, value in additional.items():
        if key == "main_target":
            merged["main_target"] = _merge_ref(merged.get("main_target"), value)
        elif key == "renderer_targets":
            renderers = list(merged.get("renderer_targets") or [])
            for i, ref in enumerate(value or []):
                if i < len(renderers):
                    if not ref:
                        continue
                    renderers[i] = _merge_ref(renderers[i], ref)
                elif ref:
                    extra = get_target_ref(ref)
                    renderers.append({"target": extra.target, "options": extra.options})
            merged["renderer_targets"] = renderers
        else:
            merged[key] = value
    return merged


def normalize_build_options(options: Options) -> Options:
    """Fold main_target_overrides and renderer_targets_overrides into the targets."""
    overrides: Options = {}
    if options.get("main_target_overrides"):
        overrides["main_target"] = options["main_target_overrides"]
    if options.get("renderer_targets_overrides"):
        overrides["renderer_targets"] = options["renderer_targets_overrides"]

    normalized = merge_build_options(options, overrides)
    normalized.pop("main_target_overrides", None)
    normalized.pop("renderer_targets_overrides", None)
    return normalized


def normalize_serve_options(options: Options) -> Options:
    """Fold build_target_overrides into build_target."""
    ref = get_target_ref(options.get("build_target"))
    build_options = normalize_build_options(ref.options) if ref.options else None

    overrides = options.get("build_target_overrides")
    target = ref.target
    if overrides:
        override_ref = get_target_ref(overrides)
        if override_ref.target is not None:
            target = override_ref.target
        if override_ref.options:
            build_options = merge_build_options(
                build_options or {}, normalize_build_options(override_ref.options)
            )

    normalized = {k: v for k, v in options.items() if k != "build_target_overrides"}
    normalized["build_target"] = {"target": target, "options": build_options}
    return normalized
