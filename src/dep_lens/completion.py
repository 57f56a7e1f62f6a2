"""
Shell completion scripts.
"""

from typing import Dict


def get_bash_completion() -> str:
    """Bash completion script."""
    return """
# Bash completion for dep-lens
_dep_lens_completion() {
    local cur prev opts
    COMPREPLY=()
    cur="${COMP_WORDS[COMP_CWORD]}"
    prev="${COMP_WORDS[COMP_CWORD-1]}"

    if [[ ${COMP_CWORD} == 1 ]]; then
        opts="list outdated why info config completion --version --help"
        COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )
        return 0
    fi

    if [[ "${COMP_WORDS[1]}" == "config" && ${COMP_CWORD} == 2 ]]; then
        opts="init show validate"
        COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )
        return 0
    fi

    if [[ "${COMP_WORDS[1]}" == "completion" && ${COMP_CWORD} == 2 ]]; then
        COMPREPLY=( $(compgen -W "bash zsh fish" -- ${cur}) )
        return 0
    fi

    case "${prev}" in
        --input|-i)
            COMPREPLY=( $(compgen -f -- ${cur}) )
            return 0
            ;;
        --format)
            COMPREPLY=( $(compgen -W "table json" -- ${cur}) )
            return 0
            ;;
        --semver)
            COMPREPLY=( $(compgen -W "patch minor" -- ${cur}) )
            return 0
            ;;
        --ecosystem)
            COMPREPLY=( $(compgen -W "npm pypi rubygems" -- ${cur}) )
            return 0
            ;;
    esac

    case "${COMP_WORDS[1]}" in
        list)
            opts="--input --depth --ecosystem --format --help"
            ;;
        outdated)
            opts="--input --ecosystem --semver --fetch --format --help"
            ;;
        why)
            opts="--input --format --help"
            ;;
        *)
            opts="--help"
            ;;
    esac
    COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )
}

complete -F _dep_lens_completion dep-lens
"""


def get_zsh_completion() -> str:
    """Zsh completion script."""
    return """
#compdef dep-lens

_dep_lens() {
    local context state state_descr line
    typeset -A opt_args

    _arguments -C \\
        '1: :_dep_lens_commands' \\
        '*:: :->args'

    case $state in
        args)
            case $words[1] in
                list)
                    _arguments \\
                        '--input[Dependency records file]:file:_files' \\
                        '--depth[Show subdependencies up to N levels deep]:depth:(0 1 2 3)' \\
                        '--ecosystem[Filter to a specific ecosystem]:ecosystem:(npm pypi rubygems)' \\
                        '--format[Output format]:format:(table json)'
                    ;;
                outdated)
                    _arguments \\
                        '--input[Dependency records file]:file:_files' \\
                        '--ecosystem[Filter to a specific ecosystem]:ecosystem:(npm pypi rubygems)' \\
                        '--semver[Filter by update level]:level:(patch minor)' \\
                        '--fetch[Look up missing versions in package registries]' \\
                        '--format[Output format]:format:(table json)'
                    ;;
                why)
                    _arguments \\
                        '--input[Dependency records file]:file:_files' \\
                        '--format[Output format]:format:(table json)' \\
                        '1:dependency name:'
                    ;;
                config)
                    _arguments '1: :(init show validate)'
                    ;;
                completion)
                    _arguments '1: :(bash zsh fish)'
                    ;;
            esac
            ;;
    esac
}

_dep_lens_commands() {
    local commands
    commands=(
        'list:List dependencies as a tree'
        'outdated:Show outdated direct dependencies'
        'why:Show why a dependency is installed'
        'info:Show information about input formats'
        'config:Configuration management commands'
        'completion:Generate shell completion scripts'
    )
    _describe 'command' commands
}

_dep_lens "$@"
"""


def get_fish_completion() -> str:
    """Fish completion script."""
    return """
# Fish completion for dep-lens

complete -c dep-lens -n '__fish_use_subcommand' -a 'list' -d 'List dependencies'
complete -c dep-lens -n '__fish_use_subcommand' -a 'outdated' -d 'Show outdated dependencies'
complete -c dep-lens -n '__fish_use_subcommand' -a 'why' -d 'Explain why a dependency is installed'
complete -c dep-lens -n '__fish_use_subcommand' -a 'info' -d 'Show information'
complete -c dep-lens -n '__fish_use_subcommand' -a 'config' -d 'Configuration management'
complete -c dep-lens -n '__fish_use_subcommand' -a 'completion' -d 'Shell completion scripts'
complete -c dep-lens -n '__fish_use_subcommand' -l version -d 'Show version'
complete -c dep-lens -n '__fish_use_subcommand' -l help -d 'Show help'

complete -c dep-lens -n '__fish_seen_subcommand_from list outdated why' -s i -l input -d 'Dependency records file' -F
complete -c dep-lens -n '__fish_seen_subcommand_from list outdated why' -l format -d 'Output format' -x -a 'table json'
complete -c dep-lens -n '__fish_seen_subcommand_from list outdated' -l ecosystem -d 'Ecosystem filter' -x -a 'npm pypi rubygems'
complete -c dep-lens -n '__fish_seen_subcommand_from list' -l depth -d 'Subdependency depth' -x
complete -c dep-lens -n '__fish_seen_subcommand_from outdated' -l semver -d 'Update level filter' -x -a 'patch minor'
complete -c dep-lens -n '__fish_seen_subcommand_from outdated' -l fetch -d 'Query package registries'

complete -c dep-lens -n '__fish_seen_subcommand_from config' -a 'init' -d 'Create sample config'
complete -c dep-lens -n '__fish_seen_subcommand_from config' -a 'show' -d 'Show current config'
complete -c dep-lens -n '__fish_seen_subcommand_from config' -a 'validate' -d 'Validate config file'

complete -c dep-lens -n '__fish_seen_subcommand_from completion' -a 'bash zsh fish'
"""


def get_completion_scripts() -> Dict[str, str]:
    """Return all completion scripts."""
    return {
        "bash": get_bash_completion(),
        "zsh": get_zsh_completion(),
        "fish": get_fish_completion(),
    }
