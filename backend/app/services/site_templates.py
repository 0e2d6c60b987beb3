"""
Static site templates.

Every catalog template shares one page layout; templates differ in
typography and shape, set through the CSS variables in ``TEMPLATE_THEMES``.
Placeholders use ``{{NAME}}`` and are filled by the site builder.
"""

PAGE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{META_TITLE}}</title>
    <meta name="description" content="{{META_DESCRIPTION}}">
    <meta name="keywords" content="{{META_KEYWORDS}}">
    <link rel="stylesheet" href="/styles.css">
</head>
<body class="template-{{TEMPLATE_ID}}">
    <nav class="navbar">
        <div class="container">
            <a href="/" class="logo">{{NAVBAR_LOGO}}</a>
            <button class="mobile-menu-toggle" aria-label="Toggle menu">
                <span></span>
                <span></span>
                <span></span>
            </button>
            <ul class="nav-links">
                {{NAVBAR_LINKS}}
            </ul>
        </div>
    </nav>

    <section class="hero"{{HERO_STYLE}}>
        {{HERO_OVERLAY}}
        <div class="container">
            <h1>{{HERO_TITLE}}</h1>
            <p class="hero-subtitle">{{HERO_SUBTITLE}}</p>
            <a href="{{HERO_CTA_LINK}}" class="btn btn-primary">{{HERO_CTA_TEXT}}</a>
        </div>
    </section>

{{SECTIONS}}

    <section class="contact" id="contact">
        <div class="container">
            <h2>Contact Us</h2>
            <div class="contact-content">
                <div class="contact-info">
                    <p><strong>Phone:</strong> <a href="tel:{{PHONE}}">{{PHONE}}</a></p>
                    <p><strong>Email:</strong> <a href="mailto:{{EMAIL}}">{{EMAIL}}</a></p>
                    <p><strong>Address:</strong> {{ADDRESS}}</p>
                </div>
                {{CONTACT_FORM}}
            </div>
        </div>
    </section>

    <footer class="footer">
        <div class="container">
            <div class="footer-content">
                <div class="footer-section">
                    <h3>{{FOOTER_COMPANY_NAME}}</h3>
                    <p>{{FOOTER_DESCRIPTION}}</p>
                </div>
                <div class="footer-section">
                    <h4>Quick Links</h4>
                    <ul>
                        {{FOOTER_LINKS}}
                    </ul>
                </div>
                <div class="footer-section">
                    <h4>Get in Touch</h4>
                    <p>{{FOOTER_PHONE}}</p>
                    <p>{{FOOTER_EMAIL}}</p>
                    <p>{{FOOTER_ADDRESS}}</p>
                </div>
            </div>
            <div class="footer-bottom">
                <p>&copy; {{YEAR}} {{FOOTER_COMPANY_NAME}}. All rights reserved.</p>
            </div>
        </div>
    </footer>

    <script src="/script.js"></script>
</body>
</html>
"""

CARD_SECTION_HTML = """    <section class="{{KIND}}">
        <div class="container">
            <h2>{{TITLE}}</h2>
            <div class="{{KIND}}-grid">
{{ITEMS}}
            </div>
        </div>
    </section>
"""

ABOUT_SECTION_HTML = """    <section class="about">
        <div class="container">
            <h2>{{TITLE}}</h2>
            <div class="about-content">
                <p>{{DESCRIPTION}}</p>
            </div>
        </div>
    </section>
"""

CONTACT_FORM_HTML = """<form class="contact-form" action="/api/contact" method="POST">
                    <div class="form-group">
                        <label for="name">Name</label>
                        <input type="text" id="name" name="name" required>
                    </div>
                    <div class="form-group">
                        <label for="email">Email</label>
                        <input type="email" id="email" name="email" required>
                    </div>
                    <div class="form-group">
                        <label for="message">Message</label>
                        <textarea id="message" name="message" required></textarea>
                    </div>
                    <button type="submit" class="btn btn-primary">Send Message</button>
                </form>"""

ATTRIBUTIONS_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Image Attributions - {{COMPANY_NAME}}</title>
    <link rel="stylesheet" href="/styles.css">
</head>
<body>
    <section class="about">
        <div class="container">
            <h2>Image Attributions</h2>
            <div class="about-content">
                <p>{{ATTRIBUTIONS}}</p>
                <p><a href="/">Back to home</a></p>
            </div>
        </div>
    </section>
</body>
</html>
"""

STYLES_CSS = """:root {
    --primary: {{PRIMARY_COLOR}};
    --secondary: {{SECONDARY_COLOR}};
    --accent: {{ACCENT_COLOR}};
    --bg: #0f1115;
    --bg-light: #181b21;
    --text: #f4f4f5;
    --text-muted: #a1a1aa;
    --border: #2a2e36;
    --font: {{FONT_FAMILY}};
    --radius: {{RADIUS}};
}

* { margin: 0; padding: 0; box-sizing: border-box; }

body { font-family: var(--font); background-color: var(--bg); color: var(--text); line-height: 1.6; }

.container { max-width: 1200px; margin: 0 auto; padding: 0 20px; }

.navbar { position: sticky; top: 0; z-index: 100; background-color: var(--primary); padding: 1rem 0; }
.navbar .container { display: flex; justify-content: space-between; align-items: center; position: relative; }
.logo { color: #fff; font-size: 1.5rem; font-weight: 700; text-decoration: none; }
.nav-links { display: flex; list-style: none; gap: 2rem; }
.nav-links a { color: #fff; text-decoration: none; transition: opacity 0.3s; }
.nav-links a:hover { opacity: 0.8; }
.mobile-menu-toggle { display: none; flex-direction: column; gap: 4px; background: none; border: none; cursor: pointer; }
.mobile-menu-toggle span { width: 25px; height: 3px; background-color: #fff; }

.hero { padding: 120px 0; text-align: center; background: linear-gradient(135deg, var(--primary), var(--secondary)); }
.hero h1 { font-size: 3.5rem; margin-bottom: 1rem; }
.hero-subtitle { font-size: 1.25rem; margin-bottom: 2rem; color: var(--text); }

.btn { display: inline-block; padding: 14px 32px; border-radius: var(--radius); text-decoration: none; font-weight: 600; border: none; cursor: pointer; }
.btn-primary { background-color: var(--accent); color: var(--bg); }

section { padding: 80px 0; }
section h2 { font-size: 2.5rem; text-align: center; margin-bottom: 3rem; }

.features-grid, .services-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(280px, 1fr)); gap: 2rem; }
.feature-card, .service-card { background-color: var(--bg-light); padding: 2rem; border-radius: var(--radius); border: 1px solid var(--border); transition: transform 0.3s; }
.feature-card:hover { transform: translateY(-5px); }
.feature-card h3 { color: var(--primary); margin-bottom: 1rem; }
.service-card h3 { color: var(--secondary); margin-bottom: 1rem; }

.about { background-color: var(--bg-light); }
.about-content { max-width: 800px; margin: 0 auto; font-size: 1.1rem; }

.contact-info { margin-bottom: 2rem; }
.contact-info p { margin-bottom: 1rem; }
.contact-info a { color: var(--primary); text-decoration: none; }
.contact-form { max-width: 600px; margin: 0 auto; }
.form-group { margin-bottom: 1.5rem; }
.form-group label { display: block; margin-bottom: 0.5rem; }
.form-group input, .form-group textarea { width: 100%; padding: 12px; background-color: var(--bg-light); border: 1px solid var(--border); border-radius: var(--radius); color: var(--text); font-size: 1rem; }
.form-group textarea { min-height: 150px; resize: vertical; }

.footer { background-color: var(--bg-light); padding: 60px 0 20px; border-top: 1px solid var(--border); }
.footer-content { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 2rem; margin-bottom: 2rem; }
.footer-section h3, .footer-section h4 { margin-bottom: 1rem; color: var(--primary); }
.footer-section ul { list-style: none; }
.footer-section a { color: var(--text-muted); text-decoration: none; }
.footer-section a:hover { color: var(--primary); }
.footer-bottom { text-align: center; padding-top: 2rem; border-top: 1px solid var(--border); color: var(--text-muted); }

@media (max-width: 768px) {
    .nav-links { display: none; }
    .mobile-menu-toggle { display: flex; }
    .hero h1 { font-size: 2.5rem; }
    .features-grid, .services-grid { grid-template-columns: 1fr; }
}
"""

SCRIPT_JS = """document.addEventListener('DOMContentLoaded', function() {
    const toggle = document.querySelector('.mobile-menu-toggle');
    const navLinks = document.querySelector('.nav-links');

    if (toggle && navLinks) {
        toggle.addEventListener('click', function() {
            const open = navLinks.style.display === 'flex';
            navLinks.style.display = open ? 'none' : 'flex';
            navLinks.style.flexDirection = 'column';
            navLinks.style.position = 'absolute';
            navLinks.style.top = '100%';
            navLinks.style.left = '0';
            navLinks.style.right = '0';
            navLinks.style.background = 'var(--primary)';
            navLinks.style.padding = '1rem';
        });
    }

    document.querySelectorAll('a[href^="#"]').forEach(function(anchor) {
        anchor.addEventListener('click', function(e) {
            const target = document.querySelector(this.getAttribute('href'));
            if (target) {
                e.preventDefault();
                target.scrollIntoView({ behavior: 'smooth', block: 'start' });
            }
        });
    });
});
"""

SANS = "'Inter', 'Helvetica Neue', Arial, sans-serif"
SERIF = "'Playfair Display', Georgia, serif"

TEMPLATE_THEMES: dict[str, dict[str, str]] = {
    "service-business": {"font": SANS, "radius": "12px"},
    "ecommerce": {"font": SANS, "radius": "8px"},
    "restaurant": {"font": SERIF, "radius": "4px"},
    "healthcare": {"font": SANS, "radius": "16px"},
    "real-estate": {"font": SERIF, "radius": "6px"},
    "professional-services": {"font": SERIF, "radius": "2px"},
    "fitness": {"font": SANS, "radius": "0"},
    "beauty-salon": {"font": SERIF, "radius": "24px"},
    "education": {"font": SANS, "radius": "10px"},
    "non-profit": {"font": SANS, "radius": "14px"},
    "modern-minimal": {"font": SANS, "radius": "0"},
    "bold-vibrant": {"font": SANS, "radius": "20px"},
    "elegant-luxury": {"font": SERIF, "radius": "2px"},
}
