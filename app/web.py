"""HTML page rendering for the addon configuration experience."""

from __future__ import annotations

import html
import json
from textwrap import dedent

from .catalogs import CATALOGS
from .config import Settings


CONFIG_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__APP_NAME__ · Configuration</title>
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #141414;
            --outline: #2b2b2b;
            --text-muted: #a6a6a6;
            --accent: #e62429;
            background: #000000;
            color: #f5f5f5;
        }
        * {
            box-sizing: border-box;
        }
        body {
            margin: 0;
            min-height: 100vh;
        }
        main {
            max-width: 760px;
            margin: 0 auto;
            padding: 3rem 1.5rem 4rem;
        }
        header {
            text-align: center;
            margin-bottom: 2rem;
        }
        .catalog {
            display: flex;
            gap: 0.75rem;
            align-items: flex-start;
            padding: 0.9rem 1rem;
            margin-bottom: 0.6rem;
            border: 1px solid var(--outline);
            border-radius: 12px;
            background: var(--surface);
        }
        .catalog small {
            display: block;
            color: var(--text-muted);
        }
        label.field {
            display: block;
            margin: 1.5rem 0 0.4rem;
        }
        input[type="text"] {
            width: 100%;
            padding: 0.7rem 0.9rem;
            border-radius: 10px;
            border: 1px solid var(--outline);
            background: var(--surface);
            color: inherit;
        }
        .actions {
            display: flex;
            gap: 0.75rem;
            margin-top: 1.5rem;
            flex-wrap: wrap;
        }
        button, a.button {
            padding: 0.75rem 1.2rem;
            border-radius: 999px;
            border: none;
            background: var(--accent);
            color: #ffffff;
            font-weight: 600;
            cursor: pointer;
            text-decoration: none;
        }
        #status {
            margin-top: 1rem;
            color: var(--text-muted);
            word-break: break-all;
        }
    </style>
</head>
<body>
    <main>
        <header>
            <h1>Configure __APP_NAME__</h1>
            <p>Pick the catalogs to install and optionally add your RPDB key for rating posters.</p>
        </header>
        <section id="catalogs"></section>
        <label class="field" for="rpdb-key">RPDB API key <small>(optional)</small></label>
        <input id="rpdb-key" type="text" autocomplete="off" placeholder="t0-free-rpdb" />
        <div class="actions">
            <button type="button" id="validate">Validate key</button>
            <a class="button" id="install" href="#">Install</a>
            <button type="button" id="copy">Copy manifest URL</button>
        </div>
        <p id="status"></p>
    </main>
    <script>
        (function() {
            const defaults = __DEFAULTS_JSON__;
            const container = document.getElementById('catalogs');
            const keyInput = document.getElementById('rpdb-key');
            const status = document.getElementById('status');
            const preselected = new Set(defaults.selected);

            defaults.catalogs.forEach((catalog) => {
                const row = document.createElement('label');
                row.className = 'catalog';
                const checkbox = document.createElement('input');
                checkbox.type = 'checkbox';
                checkbox.value = catalog.id;
                checkbox.checked = preselected.size === 0 || preselected.has(catalog.id);
                const text = document.createElement('span');
                text.textContent = catalog.name;
                const detail = document.createElement('small');
                detail.textContent = catalog.category + ' · ' + catalog.description;
                text.appendChild(detail);
                row.appendChild(checkbox);
                row.appendChild(text);
                container.appendChild(row);
            });
            keyInput.value = defaults.rpdbKey || '';

            function manifestUrl() {
                const ids = Array.from(container.querySelectorAll('input:checked')).map((box) => box.value);
                const key = keyInput.value.trim();
                if (key) {
                    ids.push('rpdb_' + key);
                }
                const base = window.location.origin;
                if (ids.length === 0) {
                    return base + '/manifest.json';
                }
                return base + '/catalog/' + encodeURIComponent(ids.join(',')) + '/manifest.json';
            }

            document.getElementById('install').addEventListener('click', (event) => {
                event.preventDefault();
                window.location.href = manifestUrl().replace(/^https?:/, 'stremio:');
            });
            document.getElementById('copy').addEventListener('click', async () => {
                const url = manifestUrl();
                try {
                    await navigator.clipboard.writeText(url);
                    status.textContent = 'Copied ' + url;
                } catch (err) {
                    status.textContent = url;
                }
            });
            document.getElementById('validate').addEventListener('click', async () => {
                const key = keyInput.value.trim();
                if (!key) {
                    status.textContent = 'Enter an RPDB key first.';
                    return;
                }
                status.textContent = 'Validating...';
                const response = await fetch('/api/validate-rpdb?key=' + encodeURIComponent(key));
                const payload = await response.json();
                status.textContent = payload.valid ? 'RPDB key is valid.' : payload.error;
            });
        })();
    </script>
</body>
</html>
    """
)


def parse_catalog_selection(catalogs_param: str | None) -> tuple[list[str], str | None]:
    """Split a ``{catalogs}`` path segment into catalog ids and the RPDB key."""

    if not catalogs_param:
        return [], None
    catalog_ids: list[str] = []
    rpdb_key: str | None = None
    for part in catalogs_param.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("rpdb_"):
            rpdb_key = part[len("rpdb_"):].strip() or None
            continue
        catalog_ids.append(part)
    return catalog_ids, rpdb_key


def render_config_page(settings: Settings, *, catalogs_param: str | None = None) -> str:
    """Return the full HTML for the ``/configure`` landing page."""

    selected, rpdb_key = parse_catalog_selection(catalogs_param)
    defaults = {
        "appName": settings.app_name,
        "catalogs": [definition.to_info() for definition in CATALOGS],
        "selected": selected,
        "rpdbKey": rpdb_key or "",
    }
    defaults_json = json.dumps(defaults).replace("</", "<\\/")

    page = CONFIG_TEMPLATE
    replacements = {
        "__APP_NAME__": html.escape(settings.app_name),
        "__DEFAULTS_JSON__": defaults_json,
    }
    for placeholder, value in replacements.items():
        page = page.replace(placeholder, value)
    return page
