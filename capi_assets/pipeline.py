"""Import providers into platform assets.

For each provider the upstream components are loaded, CA injection is moved
to the service CA, RBAC is split out, excluded components are dropped, the
images are recorded in the image catalog and the remaining objects are
packaged for the cluster-api-operator.

Everything for a provider is rendered in memory first and only written once
all of its outputs are ready. The outputs are staged in temporary files and
moved into place together, so a failed write leaves the previous outputs of
the provider in place. Any failure aborts the whole run.
"""

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from pathlib import Path
from time import perf_counter
from typing import Generator

import aiofiles
import aiofiles.os
from aiofiles.ospath import exists

from .certificates import rewrite_ca_injection
from .components import load_components
from .config import ImportConfig, ProviderConfig
from .exceptions import InputException, RepositoryException
from .filters import Predicate, filter_components
from .image import (
    derive_image_keys,
    dump_image_catalog,
    merge_image_catalog,
    read_image_catalog,
)
from .manifest import ManifestObject
from .packager import PackagedProvider, package_provider, render_rbac
from .provider import ProviderContext
from .rbac import Annotator, partition_rbac, platform_annotator
from .repository import METADATA_FILE, read_provider_versions

__all__ = [
    "Streams",
    "ProviderBuild",
    "OutputPaths",
    "transform",
    "build_provider",
    "import_providers",
]

_LOGGER = logging.getLogger(__name__)


@contextmanager
def _stage(name: str, context: ProviderContext) -> Generator[None, None, None]:
    """Log the time spent in a stage of the pipeline."""
    start = perf_counter()
    _LOGGER.debug("%s: %s", context, name)
    try:
        yield
    finally:
        _LOGGER.debug(
            "%s: %s done (%0.2fs)", context, name, perf_counter() - start
        )


@dataclass
class Streams:
    """The objects of a provider after transformation."""

    core: list[ManifestObject]
    """Objects packaged into the components ConfigMap."""

    rbac: list[ManifestObject]
    """Objects staged as a separate platform manifest."""


@dataclass(frozen=True)
class ProviderBuild:
    """Everything built for a provider, ready to be written."""

    context: ProviderContext
    rbac: list[ManifestObject]
    package: PackagedProvider
    images: dict[str, str]
    """Image catalog entries derived from the provider's Deployments."""

    @property
    def rbac_yaml(self) -> str:
        return render_rbac(self.rbac)


@dataclass(frozen=True)
class OutputPaths:
    """Where the import writes its outputs."""

    providers_dir: Path
    manifests_dir: Path
    images_file: Path

    @classmethod
    def from_config(cls, config: ImportConfig, root: Path) -> "OutputPaths":
        return cls(
            providers_dir=root / config.providers_dir,
            manifests_dir=root / config.manifests_dir,
            images_file=root / config.images_file,
        )

    def artifact(self, context: ProviderContext) -> Path:
        return self.providers_dir / context.artifact_filename

    def activation(self, context: ProviderContext) -> Path:
        return self.providers_dir / context.activation_filename

    def rbac(self, context: ProviderContext) -> Path:
        return self.manifests_dir / context.rbac_filename


def transform(
    objects: list[ManifestObject],
    exclude: Predicate | None = None,
    annotator: Annotator | None = None,
) -> Streams:
    """Rewrite CA injection, split out RBAC and drop excluded components."""
    rewritten = rewrite_ca_injection(objects)
    core, rbac = partition_rbac(rewritten, annotator)
    if exclude is not None:
        core = filter_components(core, exclude)
    _LOGGER.debug(
        "Transformed %d objects into %d core and %d RBAC objects",
        len(objects),
        len(core),
        len(rbac),
    )
    return Streams(core=core, rbac=rbac)


async def build_provider(
    provider: ProviderConfig, version: str, config: ImportConfig, root: Path
) -> ProviderBuild:
    """Run the pipeline for a provider without writing anything."""
    context = ProviderContext(name=provider.name, type=provider.type, version=version)
    repo = provider.repository(root, config.repository_dir)

    with _stage("fetch", context):
        metadata = await repo.get_file(version, METADATA_FILE)
        try:
            raw = await repo.get_file(version, repo.components_path)
        except RepositoryException as err:
            raise RepositoryException(
                f"Failed to read {repo.components_path} from repository {repo} "
                f"of provider {provider.name}: {err}"
            ) from err

    with _stage("transform", context):
        objects = load_components(raw, context, config.target_namespace)
        streams = transform(
            objects,
            exclude=provider.exclude_predicate(),
            annotator=platform_annotator(config.rbac_annotations),
        )

    with _stage("package", context):
        images = derive_image_keys(streams.core, context)
        package = package_provider(
            streams.core, context, metadata, config.target_namespace
        )

    return ProviderBuild(
        context=context, rbac=streams.rbac, package=package, images=images
    )


def provider_version(versions: dict[str, str], name: str) -> str:
    """Return the version to import for the named provider."""
    if not (version := versions.get(name)):
        raise InputException(f"No version configured for provider '{name}'")
    return version


async def _write(path: Path, content: str) -> None:
    _LOGGER.debug("Writing %s", path)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(str(path), mode="w", encoding="utf-8") as out_file:
        await out_file.write(content)


async def write_outputs(
    paths: OutputPaths, build: ProviderBuild, catalog: dict[str, str]
) -> None:
    """Write the rendered outputs of a provider.

    Every output is first written to a temporary file next to it, the files
    are only moved into place once all of them were written.
    """
    context = build.context
    outputs = [
        (paths.rbac(context), build.rbac_yaml),
        (paths.images_file, dump_image_catalog(catalog)),
        (paths.artifact(context), build.package.artifact_yaml),
        (paths.activation(context), build.package.activation_yaml),
    ]
    staged: list[tuple[Path, Path]] = []
    try:
        for path, content in outputs:
            staging = path.with_name(f".{path.name}.tmp")
            staged.append((staging, path))
            await _write(staging, content)
    except Exception:
        for staging, _ in staged:
            if await exists(staging):
                await aiofiles.os.remove(staging)
        raise
    for staging, path in staged:
        await aiofiles.os.replace(staging, path)


def select_providers(
    config: ImportConfig, provider_filter: str | None = None
) -> list[ProviderConfig]:
    """Return the providers to import, optionally limited to one by name."""
    if provider_filter:
        return [config.provider(provider_filter)]
    return list(config.providers)


async def import_providers(
    config: ImportConfig, root: Path, provider_filter: str | None = None
) -> list[ProviderContext]:
    """Import the configured providers, writing all outputs under root."""
    providers = select_providers(config, provider_filter)
    versions = await read_provider_versions(root / config.versions_file)
    paths = OutputPaths.from_config(config, root)

    imported: list[ProviderContext] = []
    for provider in providers:
        version = provider_version(versions, provider.name)
        _LOGGER.info("Importing %s %s %s", provider.type, provider.name, version)
        catalog = await read_image_catalog(paths.images_file)
        build = await build_provider(provider, version, config, root)
        catalog = merge_image_catalog(catalog, build.images)
        await write_outputs(paths, build, catalog)
        imported.append(build.context)
    return imported
