"""
Main NiceGUI application for LinkMap.

Place markers and waypoints on an image; markers are linked automatically
into a degree-bounded proximity graph. The canvas is a ui.interactive_image
showing the image letterboxed into a fixed-size frame with an SVG overlay.
Session state is autosaved to the configured backend and restored on load.
"""

import logging
import sys

from dotenv import load_dotenv
from nicegui import run, ui

load_dotenv()

from linkmap.annotation_manager import (
    CHANGE_IMAGE,
    CHANGE_RESTORE,
    DISPLAY_TOGGLES,
    STATUS_ERROR,
    STATUS_LOADING,
    AnnotationManager,
)
from linkmap.config import get_app_config
from linkmap.connectivity import graph_summary
from linkmap.constants import MARKER_TOOL, MAX_MARKERS, THRESHOLD_CHOICES, TOOLS
from linkmap.imaging import ImageDecodeError, decode_image, fetch_default_image, render_frame
from linkmap.interaction import InteractionController
from linkmap.models import MarkerRef
from linkmap.overlay import build_overlay_svg, legend_entries
from linkmap.session import SessionStore
from linkmap.storage import create_backend

config = get_app_config()
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger('linkmap.app')

CANVAS_SIZES = {
    '800x530': (800, 530),
    '1024x680': (1024, 680),
    '1280x850': (1280, 850),
}

TOOL_LABELS = {tool: tool.capitalize() for tool in TOOLS}
DISPLAY_LABELS = {
    'show_edges': 'Links',
    'show_labels': 'Numbers',
    'show_ranges': 'Ranges',
    'show_degree': 'Degree',
    'show_waypoints': 'Waypoints',
}


@ui.page('/')
def index():
    ui.dark_mode().enable()

    manager = AnnotationManager()
    controller = InteractionController(manager, config.canvas_width, config.canvas_height)
    store = SessionStore(manager, create_backend(config), autosave_delay_ms=config.autosave_delay_ms)

    # We use a container for mutable state to be accessible in closures
    state = {
        'canvas': None,
        'pil_image': None,
        'status_label': None,
        'stats_label': None,
        'selection_row': None,
        'threshold_select': None,
        'scale_input': None,
        'refreshing': False,
    }

    # --- Rendering ---

    def refresh_frame():
        """Re-render the letterboxed frame (image or container size changed)."""
        canvas = state['canvas']
        transform = controller.transform()
        if transform is None or state['pil_image'] is None:
            canvas.set_source('')
            canvas.content = ''
            return
        canvas.set_source(render_frame(state['pil_image'], transform,
                                       controller.container_width, controller.container_height))
        refresh_overlay()

    def refresh_overlay():
        graph = manager.graph()
        state['canvas'].content = build_overlay_svg(manager, controller.transform(), controller.state, graph)
        refresh_status(graph)

    def refresh_status(graph=None):
        if graph is None:
            graph = manager.graph()
        summary = graph_summary(graph, manager.max_degree)
        state['stats_label'].text = (
            f"Markers {len(manager.markers)}/{MAX_MARKERS} · Waypoints {len(manager.waypoints)} · "
            f"Links {summary['edges']} · Groups {summary['components']} · "
            f"Isolated {len(summary['isolated'])}"
        )
        if manager.image_status == STATUS_LOADING:
            status = 'Loading image...'
        elif manager.image_status == STATUS_ERROR or manager.image_error:
            status = f'Image error: {manager.image_error}'
        elif not manager.has_image:
            status = 'Upload an image to start'
        else:
            status = store.status
        state['status_label'].text = status
        refresh_selection()

    def refresh_selection():
        selected = controller.state.selected
        marker = manager.resolve(selected) if isinstance(selected, MarkerRef) else None
        state['selection_row'].set_visibility(marker is not None)
        if marker is not None:
            state['threshold_select'].set_value(marker.threshold)

    def on_manager_change(reason):
        if reason in (CHANGE_IMAGE, CHANGE_RESTORE):
            image = manager.image
            state['pil_image'] = image.open() if image else None
            sync_controls()
            refresh_frame()
        elif not state['refreshing']:
            refresh_overlay()

    manager.on_change(on_manager_change)
    controller.set_on_state_change(lambda _: refresh_overlay())

    # --- Image loading ---

    async def load_image_bytes(data: bytes, name: str):
        generation = manager.begin_image_load()
        refresh_status()
        try:
            image = await run.io_bound(decode_image, data, name)
        except ImageDecodeError as e:
            manager.finish_image_load(generation, None, error=str(e))
            ui.notify(f'Could not load image: {e}', type='negative', position='bottom-right')
            refresh_status()
            return
        manager.finish_image_load(generation, image)

    async def handle_upload(e):
        data = e.content.read()
        await load_image_bytes(data, e.name)
        e.sender.reset()

    async def fetch_default():
        """One-time best-effort default image when nothing else is loaded."""
        if not manager.awaiting_image or not config.default_image_url:
            return
        data = await run.io_bound(fetch_default_image, config.default_image_url, config.fetch_timeout)
        # The user may have uploaded or restored something meanwhile
        if data is None or not manager.awaiting_image:
            return
        await load_image_bytes(data, config.default_image_url)

    # --- Canvas events ---

    def handle_mouse(e):
        x, y = e.image_x, e.image_y
        if e.type == 'mousemove':
            controller.pointer_move(x, y, getattr(e, 'buttons', None))
        elif e.type == 'mousedown':
            controller.pointer_down(x, y, e.button)
        elif e.type == 'mouseup':
            controller.pointer_up()
        elif e.type == 'mouseout':
            controller.pointer_leave()
        elif e.type == 'click':
            created = controller.click(x, y)
            if created is None and manager.settings.tool == MARKER_TOOL and manager.markers_full:
                logger.debug('Marker cap reached, click ignored')

    # --- Toolbar actions ---

    def set_tool(e):
        manager.set_tool(e.value)

    def set_default_threshold(e):
        manager.set_default_threshold(int(e.value))

    def set_selected_threshold(e):
        selected = controller.state.selected
        if isinstance(selected, MarkerRef) and e.value is not None:
            manager.set_marker_threshold(selected.id, int(e.value))

    def set_scale(e):
        if state['refreshing'] or e.value is None or e.value == manager.settings.meters_per_pixel:
            return
        try:
            applied = manager.set_meters_per_pixel(float(e.value))
        except ValueError as err:
            ui.notify(str(err), type='warning', position='bottom-right')
            applied = False
        if not applied:
            state['scale_input'].set_value(manager.settings.meters_per_pixel)
            if manager.settings.scale_locked:
                ui.notify('Scale is locked. Unlock it to edit.', position='bottom-right', color='grey')

    def set_scale_locked(e):
        manager.set_scale_locked(e.value)

    def set_canvas_size(e):
        width, height = CANVAS_SIZES[e.value]
        controller.set_container_size(width, height)
        state['canvas'].style(f'width: {width}px; height: {height}px;')
        refresh_frame()

    def do_undo():
        if manager.undo() is None:
            ui.notify('Nothing to undo', position='bottom-right', color='grey')

    def do_clear_annotations():
        manager.clear_annotations()

    def do_save_now():
        if store.save():
            ui.notify(store.status, type='positive', position='bottom-right')
        else:
            ui.notify(store.status, type='warning', position='bottom-right')
        refresh_status()

    def do_clear_saved():
        store.clear()
        ui.notify(store.status, position='bottom-right')
        refresh_status()

    def do_export():
        document = store.export_json()
        if document is None:
            ui.notify(store.status, type='warning', position='bottom-right')
            return
        ui.download(document.encode('utf-8'), 'linkmap-session.json', 'application/json')

    async def handle_import(e):
        raw = e.content.read()
        record = await run.io_bound(store.validate, raw)
        if record is None:
            ui.notify('Not a valid session file', type='negative', position='bottom-right')
        elif not store.restore(record):
            ui.notify(store.status, type='negative', position='bottom-right')
        else:
            ui.notify('Session imported', type='positive', position='bottom-right')
        e.sender.reset()
        refresh_status()

    def sync_controls():
        """Push settings into the toolbar widgets after a restore."""
        state['refreshing'] = True
        try:
            settings = manager.settings
            tool_toggle.set_value(settings.tool)
            default_threshold.set_value(settings.default_threshold)
            state['scale_input'].set_value(settings.meters_per_pixel)
            lock_switch.set_value(settings.scale_locked)
            for name, switch in display_switches.items():
                switch.set_value(getattr(settings, name))
        finally:
            state['refreshing'] = False

    # --- Layout ---

    with ui.header().classes('items-center gap-4 bg-slate-900 px-4 py-2'):
        ui.label('LinkMap').classes('text-xl font-bold')
        ui.upload(label='Image', on_upload=handle_upload, auto_upload=True) \
            .props('accept=image/* dense flat color=primary').classes('w-48')
        tool_toggle = ui.toggle(TOOL_LABELS, value=manager.settings.tool, on_change=set_tool).props('dense')
        default_threshold = ui.select(
            {t: f'{t} m' for t in THRESHOLD_CHOICES},
            value=manager.settings.default_threshold,
            label='New marker',
            on_change=set_default_threshold,
        ).props('dense outlined').classes('w-32')

    with ui.row().classes('w-full items-start gap-4 p-4 no-wrap'):
        with ui.column().classes('gap-2'):
            width, height = controller.container_width, controller.container_height
            state['canvas'] = ui.interactive_image(
                events=['mousedown', 'mousemove', 'mouseup', 'mouseout', 'click'],
                on_mouse=handle_mouse,
                cross=False,
            ).style(f'width: {width}px; height: {height}px;').classes('border border-slate-700')
            with ui.row().classes('items-center gap-4'):
                state['status_label'] = ui.label('').classes('text-sm text-gray-400')
                state['stats_label'] = ui.label('').classes('text-sm text-gray-300')

        with ui.card().classes('w-72 gap-3 bg-slate-900 border border-slate-700'):
            ui.label('Scale').classes('text-sm font-bold')
            with ui.row().classes('items-center gap-2 no-wrap'):
                state['scale_input'] = ui.number(
                    'm / px', value=manager.settings.meters_per_pixel, min=0.0001, step=0.1,
                    on_change=set_scale,
                ).props('dense outlined debounce=400').classes('w-32')
                lock_switch = ui.switch('Locked', value=manager.settings.scale_locked,
                                        on_change=set_scale_locked).props('dense')

            state['selection_row'] = ui.row().classes('items-center gap-2')
            with state['selection_row']:
                ui.label('Selected marker').classes('text-sm')
                state['threshold_select'] = ui.select(
                    {t: f'{t} m' for t in THRESHOLD_CHOICES}, value=None,
                    on_change=set_selected_threshold,
                ).props('dense outlined').classes('w-28')
                ui.button(icon='close', on_click=controller.clear_selection).props('flat dense round')
            state['selection_row'].set_visibility(False)

            ui.label('Display').classes('text-sm font-bold')
            display_switches = {}
            for name in DISPLAY_TOGGLES:
                display_switches[name] = ui.switch(
                    DISPLAY_LABELS[name], value=getattr(manager.settings, name),
                    on_change=lambda e, n=name: manager.set_display(n, e.value),
                ).props('dense')

            size_key = f'{width}x{height}'
            ui.select(list(CANVAS_SIZES), value=size_key if size_key in CANVAS_SIZES else None,
                      label='Canvas', on_change=set_canvas_size).props('dense outlined')

            ui.separator()
            with ui.row().classes('gap-2'):
                ui.button('Undo', icon='undo', on_click=do_undo).props('dense')
                ui.button('Clear', icon='delete_sweep', on_click=do_clear_annotations).props('dense color=negative')
            with ui.row().classes('gap-2'):
                ui.button('Save', icon='save', on_click=do_save_now).props('dense')
                ui.button('Forget', icon='delete_forever', on_click=do_clear_saved).props('dense flat')
                ui.button('Export', icon='download', on_click=do_export).props('dense flat')
            ui.upload(label='Import session', on_upload=handle_import, auto_upload=True) \
                .props('accept=.json,application/json dense flat').classes('w-full')

            ui.label('Legend').classes('text-sm font-bold')
            for name, color in legend_entries().items():
                with ui.row().classes('items-center gap-2'):
                    ui.element('div').style(f'width: 12px; height: 12px; border-radius: 6px; background: {color};')
                    ui.label(name).classes('text-xs text-gray-400')

    # --- Startup ---

    if not store.restore_saved():
        ui.timer(0.1, fetch_default, once=True)
    refresh_frame()
    refresh_status()

    # Drives the debounced autosave
    def autosave_tick():
        if store.tick():
            refresh_status()

    ui.timer(0.1, autosave_tick)


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='LinkMap',
        port=config.port,
        reload=not getattr(sys, 'frozen', False),
        storage_secret=config.storage_secret,
    )
