"""Bundle pipeline building blocks.

- `flatpak_bundler.framework.options`: option resolution (`BundleOptions`)
- `flatpak_bundler.framework.manifest`: manifest key normalization, defaults, validation
- `flatpak_bundler.framework.workspace`: working directory + manifest file
- `flatpak_bundler.framework.staging`: file copies and symlinks into the build tree
- `flatpak_bundler.framework.process` / `flatpak`: external tool invocation
- `flatpak_bundler.framework.plan`: the stage tree run by `pipelinekit`

For reusable, project-agnostic pipeline primitives, use `pipelinekit`.
"""
