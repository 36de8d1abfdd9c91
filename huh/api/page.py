"""Single-page camera capture and gallery UI served at ``/``."""

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>HUH Camera &amp; Gallery</title>
  <style>
    body { font-family: sans-serif; background: #f1f5f9; color: #1e293b; margin: 0; }
    main { max-width: 1100px; margin: 0 auto; padding: 1rem; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 1.5rem; }
    .card { background: #fff; border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px #0002; }
    video { width: 100%; background: #e2e8f0; border-radius: 6px; }
    #gallery { display: grid; grid-template-columns: repeat(3, 1fr); gap: .75rem; }
    #gallery figure { margin: 0; }
    #gallery img { width: 100%; aspect-ratio: 1; object-fit: cover; border-radius: 6px; }
    #gallery figcaption { font-size: .7rem; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
    .status { min-height: 1.2rem; font-size: .9rem; margin-top: .5rem; }
  </style>
</head>
<body>
<main>
  <h1>HUH Camera &amp; Gallery</h1>
  <p>Capture images and save them in the .huh format.</p>
  <div class="grid">
    <section class="card">
      <h2>Camera</h2>
      <video id="video" autoplay playsinline></video>
      <canvas id="canvas" hidden></canvas>
      <button id="snap">Take photo</button>
      <div id="status" class="status"></div>
    </section>
    <section class="card">
      <h2>Gallery</h2>
      <form id="uploadForm">
        <input type="file" id="fileInput" name="huhfile" accept=".huh" required>
        <button type="submit" id="uploadButton">Upload</button>
      </form>
      <div id="uploadStatus" class="status"></div>
      <div id="gallery"><p>Loading...</p></div>
    </section>
  </div>
</main>
<script>
  const $ = (id) => document.getElementById(id);
  const video = $('video'), canvas = $('canvas'), snap = $('snap'), gallery = $('gallery');

  navigator.mediaDevices.getUserMedia({ video: true, audio: false })
    .then((stream) => { video.srcObject = stream; })
    .catch(() => { $('status').textContent = 'Camera access denied.'; snap.disabled = true; });

  const addImage = (name, prepend) => {
    const fig = document.createElement('figure');
    const img = document.createElement('img');
    img.src = '/view/' + encodeURIComponent(name);
    img.alt = name;
    const cap = document.createElement('figcaption');
    cap.textContent = name;
    fig.append(img, cap);
    prepend ? gallery.prepend(fig) : gallery.append(fig);
  };

  const loadGallery = async () => {
    try {
      const names = await (await fetch('/api/images')).json();
      gallery.innerHTML = names.length ? '' : '<p>No images in the gallery yet.</p>';
      names.forEach((n) => addImage(n, false));
    } catch (e) {
      gallery.innerHTML = '<p>Could not load gallery.</p>';
    }
  };

  snap.addEventListener('click', async () => {
    $('status').textContent = 'Processing...';
    snap.disabled = true;
    canvas.width = video.videoWidth;
    canvas.height = video.videoHeight;
    canvas.getContext('2d').drawImage(video, 0, 0);
    try {
      const resp = await fetch('/api/upload', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ image: canvas.toDataURL('image/png'), author: 'WebApp User' }),
      });
      const data = await resp.json();
      if (data.success) {
        if (!gallery.querySelector('figure')) gallery.innerHTML = '';
        addImage(data.filename, true);
        $('status').textContent = 'Saved ' + data.filename;
      } else {
        $('status').textContent = 'Error: ' + data.error;
      }
    } catch (e) {
      $('status').textContent = 'Server connection error.';
    } finally {
      snap.disabled = false;
    }
  });

  $('uploadForm').addEventListener('submit', async (event) => {
    event.preventDefault();
    const form = new FormData();
    form.append('huhfile', $('fileInput').files[0]);
    $('uploadStatus').textContent = 'Uploading...';
    try {
      const data = await (await fetch('/api/upload-file', { method: 'POST', body: form })).json();
      $('uploadStatus').textContent = data.success ? 'File uploaded.' : 'Error: ' + data.error;
      if (data.success) { event.target.reset(); loadGallery(); }
    } catch (e) {
      $('uploadStatus').textContent = 'Server connection error.';
    }
  });

  document.addEventListener('DOMContentLoaded', loadGallery);
</script>
</body>
</html>
"""
