"""Entry point: starts MCP server thread + pygame main loop."""

import os
# Suppress pygame welcome message before importing; it prints to stdout
# which would corrupt the MCP stdio JSON-RPC stream.
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import logging
import queue
import sys
import threading

import pygame
from canvas import Canvas
from document import default_document, load_document, parse_size, save_document
from errors import FormatError
from tools import create_mcp_server

log = logging.getLogger(__name__)

WIDTH = int(os.environ.get("NOTESVG_WIDTH", "360"))
HEIGHT = int(os.environ.get("NOTESVG_HEIGHT", "360"))
DOCUMENT_PATH = os.environ.get("NOTESVG_DOCUMENT")
LOG_LEVEL = os.environ.get("NOTESVG_LOG_LEVEL", "INFO")
TOOLBAR_H = 40
FPS = 60

MOUSE_ID = "mouse"

# Toolbar colours
TB_BG = (220, 220, 220)
TB_BTN = (180, 180, 180)
TB_BTN_HOVER = (160, 160, 160)
TB_BTN_SELECTED = (140, 170, 210)
TB_TEXT = (30, 30, 30)

BUTTONS = {
    "save": ("Save", pygame.Rect(8, 8, 52, 26)),
    "pen": ("Pen", pygame.Rect(66, 8, 52, 26)),
    "eraser": ("Eraser", pygame.Rect(124, 8, 64, 26)),
    "clear": ("Clear", pygame.Rect(194, 8, 52, 26)),
    "resize": ("Resize", pygame.Rect(252, 8, 64, 26)),
}


def configure_logging(level: str = LOG_LEVEL):
    """Log to stderr; stdout belongs to the MCP stdio transport."""
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run_mcp_server(mcp_server):
    """Target for the daemon thread; runs the MCP stdio server."""
    mcp_server.run(transport="stdio")


def _save_dialog_and_write(canvas: Canvas):
    """Open a Tk file-save dialog (runs on main thread) and write the SVG."""
    import tkinter as tk
    from tkinter import filedialog
    root = tk.Tk()
    root.withdraw()
    path = filedialog.asksaveasfilename(
        defaultextension=".svg",
        filetypes=[("SVG image", "*.svg"), ("All files", "*.*")],
        title="Save note as…",
    )
    root.destroy()
    if path:
        save_document(canvas.tree, path)


def apply_resize(canvas: Canvas, text: str | None) -> bool:
    """Resize the document from a "480x480" string. Returns False if it isn't one."""
    size = parse_size(text) if text else None
    if size is None:
        log.warning("Ignoring resize to %r; expected WIDTHxHEIGHT", text)
        return False
    canvas.execute({"action": "resize", "width": size[0], "height": size[1]})
    return True


def _resize_dialog(canvas: Canvas):
    """Ask for a new size with a Tk prompt (runs on main thread)."""
    import tkinter as tk
    from tkinter import simpledialog
    root = tk.Tk()
    root.withdraw()
    text = simpledialog.askstring(
        "Resize note", "New size (e.g. 480x480):",
        initialvalue=f"{canvas.width}x{canvas.height}",
    )
    root.destroy()
    if text is not None:
        apply_resize(canvas, text)


def _open_document():
    if DOCUMENT_PATH and os.path.exists(DOCUMENT_PATH):
        try:
            return load_document(DOCUMENT_PATH)
        except (OSError, FormatError) as e:
            log.error("Could not load %s, starting a blank note: %s", DOCUMENT_PATH, e)
    return default_document(WIDTH, HEIGHT)


def _handle_request(cmd: dict, canvas: Canvas):
    """Process a request/response command from the MCP tool thread."""
    event: threading.Event = cmd["_event"]
    result: dict = cmd["_result"]
    action = cmd.get("action")
    try:
        if action == "get_pixels":
            data = canvas.get_pixels_rgb(
                cmd.get("x", 0), cmd.get("y", 0),
                cmd.get("w"), cmd.get("h"),
            )
            result["data"] = data
        elif action == "save_file":
            path = cmd["path"]
            pygame.image.save(canvas.get_display_surface(), path)
            result["data"] = f"Canvas saved to {path}"
        elif action == "get_svg":
            result["data"] = canvas.to_svg()
        elif action == "save_svg":
            path = cmd["path"]
            save_document(canvas.tree, path)
            result["data"] = f"Document saved to {path}"
        elif action == "load_svg":
            canvas.load_svg(cmd["svg"])
            result["data"] = [canvas.width, canvas.height]
        else:
            result["error"] = f"Unknown request action: {action}"
    except Exception as e:
        log.warning("Request %s failed: %s", action, e)
        result["error"] = str(e)
    finally:
        event.set()


def _handle_pointer(event, canvas: Canvas) -> bool:
    """Feed mouse and touch events into stroke sessions. Returns True if consumed."""
    if event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEMOTION, pygame.MOUSEBUTTONUP):
        # Touch input also arrives as FINGER* events; skip the emulated mouse copy
        if getattr(event, "touch", False):
            return True
        x, y = event.pos[0], event.pos[1] - TOOLBAR_H
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and y >= 0:
            canvas.begin_stroke(MOUSE_ID, (x, y))
        elif event.type == pygame.MOUSEMOTION and event.buttons[0]:
            canvas.extend_stroke(MOUSE_ID, (x, y))
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            canvas.end_stroke(MOUSE_ID, (x, y))
        return True

    if event.type in (pygame.FINGERDOWN, pygame.FINGERMOTION, pygame.FINGERUP):
        # Finger coordinates are normalised to the window
        win_w, win_h = pygame.display.get_surface().get_size()
        x, y = event.x * win_w, event.y * win_h - TOOLBAR_H
        stroke_id = f"finger:{event.finger_id}"
        if event.type == pygame.FINGERDOWN and y >= 0:
            canvas.begin_stroke(stroke_id, (x, y))
        elif event.type == pygame.FINGERMOTION:
            canvas.extend_stroke(stroke_id, (x, y))
        elif event.type == pygame.FINGERUP:
            canvas.end_stroke(stroke_id, (x, y))
        return True
    return False


def _handle_toolbar(pos, canvas: Canvas) -> bool:
    for name, (_, rect) in BUTTONS.items():
        if not rect.collidepoint(pos):
            continue
        if name == "save":
            _save_dialog_and_write(canvas)
        elif name == "clear":
            canvas.execute({"action": "clear"})
        elif name == "resize":
            _resize_dialog(canvas)
        else:
            canvas.select_tool(name)
        return True
    return False


def _draw_toolbar(screen: pygame.Surface, font, canvas: Canvas, mouse_pos):
    pygame.draw.rect(screen, TB_BG, (0, 0, screen.get_width(), TOOLBAR_H))
    for name, (text, rect) in BUTTONS.items():
        if name == canvas.state.tool:
            btn_color = TB_BTN_SELECTED
        elif rect.collidepoint(mouse_pos):
            btn_color = TB_BTN_HOVER
        else:
            btn_color = TB_BTN
        pygame.draw.rect(screen, btn_color, rect, border_radius=4)
        pygame.draw.rect(screen, TB_TEXT, rect, width=1, border_radius=4)
        label = font.render(text, True, TB_TEXT)
        screen.blit(label, label.get_rect(center=rect.center))


def main():
    configure_logging()

    canvas = Canvas(_open_document())

    # Shared command queue between MCP thread and pygame main thread
    command_queue = queue.Queue()

    # Create MCP server with tool definitions
    mcp_server = create_mcp_server(command_queue, canvas.width, canvas.height)

    # Start MCP server in a background daemon thread
    mcp_thread = threading.Thread(target=run_mcp_server, args=(mcp_server,), daemon=True)
    mcp_thread.start()

    # Initialize pygame on the main thread
    pygame.init()
    screen = pygame.display.set_mode((canvas.width, canvas.height + TOOLBAR_H))
    pygame.display.set_caption("note.svg")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont(None, 24)

    running = True
    while running:
        mouse_pos = pygame.mouse.get_pos()

        # Handle pygame events
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.WINDOWFOCUSLOST:
                # Lost input must not leave a stroke stuck open
                canvas.cancel_strokes()
            elif (event.type == pygame.MOUSEBUTTONDOWN and event.button == 1
                    and event.pos[1] < TOOLBAR_H):
                _handle_toolbar(event.pos, canvas)
            else:
                try:
                    _handle_pointer(event, canvas)
                except Exception as e:
                    log.error("Pointer event %s failed: %s",
                              pygame.event.event_name(event.type), e)

        # Drain all pending commands from the queue
        while True:
            try:
                cmd = command_queue.get_nowait()
            except queue.Empty:
                break

            # Request/response bridge commands have an _event key
            if "_event" in cmd:
                _handle_request(cmd, canvas)
            else:
                try:
                    canvas.execute(cmd)
                except Exception as e:
                    log.error("Command %s failed: %s", cmd.get("action"), e)

        # Follow document resizes
        window_size = (canvas.width, canvas.height + TOOLBAR_H)
        if screen.get_size() != window_size:
            screen = pygame.display.set_mode(window_size)

        # --- Render ---
        _draw_toolbar(screen, font, canvas, mouse_pos)
        # Canvas (offset below toolbar)
        screen.blit(canvas.get_display_surface(), (0, TOOLBAR_H))
        pygame.display.flip()
        clock.tick(FPS)

    canvas.cancel_strokes()
    if DOCUMENT_PATH:
        save_document(canvas.tree, DOCUMENT_PATH)
    pygame.quit()


if __name__ == "__main__":
    main()
