"""
In-page scripts - The fixed, versioned payloads run through ``evaluate``.

Scripts only collect data. Scoring and selection happen in Python over the
validated payloads defined in ``engine.schemas``.

Element scripts take the element as their first argument and are run with
``IElementSet.evaluate``. Page scripts take one argument and are run with
``IDocument.evaluate``.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class PageScript:
    """A named, versioned in-page function."""
    name: str
    version: int
    source: str

    @property
    def key(self) -> str:
        return f"{self.name}@{self.version}"


# =============================================================================
# FEATURE EXTRACTION (element scripts)
# =============================================================================

FEATURE_TEXT = PageScript("feature.text", 1, r'''
(el) => ({
    content: el.textContent || '',
    visible_text: el.innerText || '',
    aria_label: el.getAttribute('aria-label') || null,
    title: el.getAttribute('title') || null,
    placeholder: el.getAttribute('placeholder') || null,
    value: (typeof el.value === 'string' && el.value) ? el.value : null,
    alt: el.getAttribute('alt') || null
})
''')

FEATURE_VISUAL = PageScript("feature.visual", 1, r'''
(el) => {
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const opacity = parseFloat(style.opacity);
    const zIndex = parseInt(style.zIndex) || 0;
    const inViewport = (
        rect.top >= 0 &&
        rect.left >= 0 &&
        rect.bottom <= (window.innerHeight || document.documentElement.clientHeight) &&
        rect.right <= (window.innerWidth || document.documentElement.clientWidth)
    );
    return {
        is_visible: style.display !== 'none' && style.visibility !== 'hidden' && opacity > 0,
        bounding_box: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
        z_index: zIndex,
        opacity: opacity,
        background_color: style.backgroundColor,
        color: style.color,
        font_size: style.fontSize,
        font_weight: style.fontWeight,
        display: style.display,
        position: style.position,
        cursor: style.cursor,
        in_viewport: inViewport,
        visual_weight: rect.width * rect.height * opacity * Math.max(zIndex, 1)
    };
}
''')

FEATURE_STRUCTURAL = PageScript("feature.structural", 1, r'''
(el) => {
    const attributes = {};
    for (const attr of el.attributes) {
        attributes[attr.name] = attr.value;
    }
    const path = [];
    let current = el;
    while (current && current.tagName) {
        path.unshift(current.tagName.toLowerCase());
        current = current.parentElement;
    }
    const role = el.getAttribute('role');
    const isInteractive = ['A', 'BUTTON', 'INPUT', 'SELECT', 'TEXTAREA'].includes(el.tagName) ||
        el.hasAttribute('onclick') ||
        (role !== null && ['button', 'link'].includes(role));
    const siblings = el.parentElement ? Array.from(el.parentElement.children) : [];
    return {
        tag_name: el.tagName.toLowerCase(),
        attributes: attributes,
        class_list: Array.from(el.classList),
        id: el.id || '',
        role: role,
        is_interactive: isInteractive,
        child_count: el.children.length,
        sibling_count: siblings.length,
        sibling_index: siblings.indexOf(el),
        path: path,
        depth: path.length
    };
}
''')

FEATURE_SEMANTIC = PageScript("feature.semantic", 1, r'''
(el) => {
    let role = el.getAttribute('role');
    if (!role) {
        const tagRoles = {
            A: 'link', BUTTON: 'button', SELECT: 'combobox', TEXTAREA: 'textbox',
            NAV: 'navigation', MAIN: 'main', HEADER: 'banner', FOOTER: 'contentinfo',
            ASIDE: 'complementary', TABLE: 'table', UL: 'list', OL: 'list', LI: 'listitem',
            H1: 'heading', H2: 'heading', H3: 'heading', H4: 'heading', H5: 'heading', H6: 'heading',
            INPUT: el.type === 'checkbox' ? 'checkbox' : el.type === 'radio' ? 'radio' : 'textbox'
        };
        role = tagRoles[el.tagName] || 'generic';
    }
    const isLandmark = ['banner', 'navigation', 'main', 'complementary',
                        'contentinfo', 'search', 'region'].includes(role);
    let headingLevel = 0;
    if (/^H[1-6]$/.test(el.tagName)) {
        headingLevel = parseInt(el.tagName.charAt(1));
    } else if (role === 'heading') {
        headingLevel = parseInt(el.getAttribute('aria-level') || '0') || 0;
    }
    const listItem = el.tagName === 'LI' || role === 'listitem';
    const tableCell = ['TD', 'TH'].includes(el.tagName) || role === 'cell' || role === 'gridcell';
    let semanticType = 'generic';
    if (isLandmark) semanticType = 'landmark';
    else if (headingLevel > 0) semanticType = 'heading';
    else if (listItem) semanticType = 'listitem';
    else if (tableCell) semanticType = 'tablecell';
    else if (['button', 'link'].includes(role)) semanticType = 'interactive';
    else if (['textbox', 'searchbox', 'combobox'].includes(role)) semanticType = 'input';
    return {
        role: role,
        semantic_type: semanticType,
        is_landmark: isLandmark,
        heading_level: headingLevel,
        list_item: listItem,
        list_container: ['UL', 'OL'].includes(el.tagName) || role === 'list',
        table_cell: tableCell,
        table_row: el.tagName === 'TR' || role === 'row',
        is_required: el.hasAttribute('required') || el.getAttribute('aria-required') === 'true'
    };
}
''')

FEATURE_CONTEXT = PageScript("feature.context", 1, r'''
(el) => {
    const parent = el.parentElement;
    const siblings = parent ? Array.from(parent.children) : [];
    const siblingTexts = siblings
        .filter(s => s !== el)
        .map(s => (s.textContent || '').slice(0, 50))
        .filter(t => t.length > 0)
        .slice(0, 5);

    let nearbyHeading = '';
    let current = el.previousElementSibling;
    while (current && !nearbyHeading) {
        if (/^H[1-6]$/.test(current.tagName)) nearbyHeading = current.textContent || '';
        current = current.previousElementSibling;
    }

    let labelText = '';
    if (el.id) {
        const label = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
        if (label) labelText = label.textContent || '';
    }
    if (!labelText && parent && parent.tagName === 'LABEL') labelText = parent.textContent || '';

    const form = el.closest('form');
    const formId = form ? (form.id || form.getAttribute('name') || '') : '';

    const table = el.closest('table');
    const tableHeaders = table ? Array.from(table.querySelectorAll('th')).map(th => th.textContent || '') : [];

    let nearestLandmark = null;
    const landmarkRoles = ['banner', 'navigation', 'main', 'complementary', 'contentinfo'];
    for (let node = el; node && node.getAttribute; node = node.parentElement) {
        const role = node.getAttribute('role');
        if (role && landmarkRoles.includes(role)) {
            nearestLandmark = {role: role, id: node.id || ''};
            break;
        }
    }

    return {
        parent_tag: parent ? parent.tagName.toLowerCase() : '',
        parent_text: parent ? (parent.textContent || '').slice(0, 100) : '',
        sibling_texts: siblingTexts,
        nearby_heading: nearbyHeading,
        label_text: labelText,
        form_id: formId,
        table_headers: tableHeaders,
        nearest_landmark: nearestLandmark,
        preceding_text: el.previousSibling ? (el.previousSibling.textContent || '').slice(0, 50) : '',
        following_text: el.nextSibling ? (el.nextSibling.textContent || '').slice(0, 50) : ''
    };
}
''')


# =============================================================================
# SIGNATURES (element scripts, captured after a successful resolution)
# =============================================================================

SIGNATURE_VISUAL = PageScript("signature.visual", 1, r'''
(el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return {
        width: rect.width,
        height: rect.height,
        top: rect.top,
        left: rect.left,
        background_color: style.backgroundColor,
        color: style.color,
        font_size: style.fontSize
    };
}
''')

SIGNATURE_STRUCTURE = PageScript("signature.structure", 1, r'''
(el) => {
    const parent = el.parentElement;
    const siblings = parent ? Array.from(parent.children) : [];
    const attributes = {};
    for (const attr of el.attributes) {
        attributes[attr.name] = attr.value;
    }
    return {
        tag: el.tagName.toLowerCase(),
        parent: parent ? {tag: parent.tagName.toLowerCase(), class_name: parent.getAttribute('class') || ''} : null,
        sibling_index: siblings.indexOf(el),
        child_count: el.children.length,
        attributes: attributes
    };
}
''')


# =============================================================================
# HEALING SCANS (page scripts)
# =============================================================================

SCAN_NEARBY = PageScript("scan.nearby", 1, r'''
() => Array.from(document.querySelectorAll('body *')).map(el => ({
    tag: el.tagName.toLowerCase(),
    id: el.id || '',
    classes: Array.from(el.classList),
    text: (el.textContent || '').trim().slice(0, 200)
}))
''')

SCAN_VISUAL = PageScript("scan.visual", 1, r'''
() => Array.from(document.querySelectorAll('body *')).map(el => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return {
        tag: el.tagName.toLowerCase(),
        id: el.id || '',
        classes: Array.from(el.classList),
        width: rect.width,
        height: rect.height,
        top: rect.top,
        left: rect.left,
        background_color: style.backgroundColor,
        color: style.color,
        font_size: style.fontSize
    };
})
''')

SCAN_STRUCTURE = PageScript("scan.structure", 1, r'''
(tag) => Array.from(document.getElementsByTagName(tag)).map(el => {
    const parent = el.parentElement;
    const siblings = parent ? Array.from(parent.children) : [];
    const attributes = {};
    for (const attr of el.attributes) {
        attributes[attr.name] = attr.value;
    }
    return {
        tag: el.tagName.toLowerCase(),
        id: el.id || '',
        classes: Array.from(el.classList),
        parent: parent ? {tag: parent.tagName.toLowerCase(), class_name: parent.getAttribute('class') || ''} : null,
        sibling_index: siblings.indexOf(el),
        child_count: el.children.length,
        attributes: attributes
    };
})
''')

SCAN_INTERACTIVE = PageScript("scan.interactive", 1, r'''
() => {
    function selectorFor(el) {
        if (el.id) return '#' + CSS.escape(el.id);
        const classes = Array.from(el.classList).filter(c => !c.startsWith('ng-'));
        if (classes.length > 0) {
            return el.tagName.toLowerCase() + '.' + classes.map(c => CSS.escape(c)).join('.');
        }
        let path = '';
        for (let node = el; node && node.nodeType === Node.ELEMENT_NODE; node = node.parentElement) {
            let index = 0;
            for (let sib = node.previousElementSibling; sib; sib = sib.previousElementSibling) {
                if (sib.nodeName === node.nodeName) index++;
            }
            path = '/' + node.nodeName.toLowerCase() + (index > 0 ? '[' + (index + 1) + ']' : '') + path;
        }
        return 'xpath=' + path;
    }

    const seen = new Set();
    const elements = [];
    const selectors = ['button', 'a', 'input', 'select', 'textarea', '[role="button"]', '[onclick]'];
    for (const selector of selectors) {
        for (const node of document.querySelectorAll(selector)) {
            if (seen.has(node)) continue;
            seen.add(node);
            const rect = node.getBoundingClientRect();
            const style = window.getComputedStyle(node);
            const parent = node.parentElement;
            const previous = node.previousElementSibling;
            elements.push({
                tag: node.tagName.toLowerCase(),
                text: (node.textContent || '').trim() || node.value || node.placeholder || '',
                selector: selectorFor(node),
                position: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
                style: {
                    color: style.color,
                    background_color: style.backgroundColor,
                    border_radius: style.borderRadius
                },
                near_text: [
                    previous ? (previous.textContent || '') : '',
                    parent ? (parent.textContent || '') : ''
                ].join(' ').trim().slice(0, 300),
                visible: rect.width > 0 && rect.height > 0 && style.display !== 'none'
            });
        }
    }
    return {
        viewport: {width: window.innerWidth || 1920, height: window.innerHeight || 1080},
        elements: elements
    };
}
''')


FEATURE_SCRIPTS: Dict[str, PageScript] = {
    "text": FEATURE_TEXT,
    "visual": FEATURE_VISUAL,
    "structural": FEATURE_STRUCTURAL,
    "semantic": FEATURE_SEMANTIC,
    "context": FEATURE_CONTEXT,
}

ALL_SCRIPTS: Dict[str, PageScript] = {
    script.name: script
    for script in (
        FEATURE_TEXT,
        FEATURE_VISUAL,
        FEATURE_STRUCTURAL,
        FEATURE_SEMANTIC,
        FEATURE_CONTEXT,
        SIGNATURE_VISUAL,
        SIGNATURE_STRUCTURE,
        SCAN_NEARBY,
        SCAN_VISUAL,
        SCAN_STRUCTURE,
        SCAN_INTERACTIVE,
    )
}
